from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from resume_chat.schemas.resume import ResumeSnapshot

T = TypeVar("T")

MAX_MESSAGE_LENGTH = 100000
MAX_TITLE_LENGTH = 400


class ServiceResponse(BaseModel, Generic[T]):
    """Uniform result returned by every chat service operation."""

    status: bool
    message: str
    data: T | None = None
    error: str | None = None  # error code when status is False


class CreateSessionRequest(BaseModel):
    template_id: str | None = None


class ChatEnhanceRequest(BaseModel):
    chat_id: str | None = None
    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    resume_data: ResumeSnapshot | None = None
    resume_html: str | None = None
    template_id: str | None = None


class ResumeEnhanceRequest(BaseModel):
    resume_data: ResumeSnapshot
    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    template_id: str | None = None


class RenameSessionRequest(BaseModel):
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)


class SaveResumeRequest(BaseModel):
    resume_data: ResumeSnapshot
    template_id: str | None = None


class SessionSummary(BaseModel):
    chat_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0
    is_active: bool = True
    template_id: str | None = None


class ChatMessage(BaseModel):
    id: str
    role: str  # "user" | "assistant"
    content: str
    resume_data: ResumeSnapshot | None = None
    timestamp: datetime
    processing_time_ms: int | None = None


class SessionDetail(BaseModel):
    chat_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = True
    template_id: str | None = None
    resume_data: ResumeSnapshot | None = None
    resume_html: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)


class EnhancementResult(BaseModel):
    chat_id: str
    history_id: str
    title: str | None = None
    user_message: str
    assistant_message: str
    current_resume: ResumeSnapshot | None = None
    enhanced_html: str | None = None
    processing_time_ms: int
    timestamp: datetime


class StandaloneEnhancementResult(BaseModel):
    history_id: str
    user_message: str
    original_resume: ResumeSnapshot
    enhanced_resume: ResumeSnapshot
    template_id: str | None = None
    processing_time_ms: int
    timestamp: datetime


class HistorySummary(BaseModel):
    id: str
    entry_type: str
    user_message: str
    template_id: str | None = None
    created_at: datetime


class HistoryDetail(BaseModel):
    id: str
    chat_id: str | None = None
    entry_type: str
    template_id: str | None = None
    user_message: str
    assistant_message: str
    original_resume: ResumeSnapshot | None = None
    enhanced_resume: ResumeSnapshot | None = None
    resume_html: str | None = None
    enhanced_html: str | None = None
    created_at: datetime
    processing_time_ms: int | None = None


class UsageSummary(BaseModel):
    daily_token_usage: int
    active_chat_sessions: int
    benefits: dict[str, Any] = Field(default_factory=dict)


class MasterResumeResponse(BaseModel):
    id: str
    user_id: str
    resume_data: ResumeSnapshot
    parsed_from: str
    parsed_at: datetime | None = None
    updated_at: datetime | None = None
