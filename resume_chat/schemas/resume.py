from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _normalize_keys(value: Any) -> Any:
    """Lowercase keys and drop nulls so provider output matches field names case-insensitively."""
    if isinstance(value, dict):
        return {
            str(k).lower(): _normalize_keys(v)
            for k, v in value.items()
            if v is not None
        }
    if isinstance(value, list):
        return [_normalize_keys(v) for v in value if v is not None]
    return value


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _case_insensitive(cls, data: Any) -> Any:
        return _normalize_keys(data)


class Experience(_SnapshotModel):
    company: str = ""
    position: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    description: str = ""


class Education(_SnapshotModel):
    degree: str = ""
    field: str = ""
    institution: str = ""
    year: str = ""


class ResumeSnapshot(_SnapshotModel):
    """A whole resume document. Stored as a full copy on every history entry."""

    name: str = ""
    role: str = ""
    phoneno: str = ""
    email: str = ""
    location: str = ""
    linkedin: str = ""
    github: str = ""
    summary: str = ""
    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> "ResumeSnapshot | None":
        if document is None:
            return None
        return cls.model_validate(document)
