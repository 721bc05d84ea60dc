from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from resume_chat.database import Base
from resume_chat.models.history_entry import SnapshotType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MasterResume(Base):
    """A user's canonical resume (at most one per user), used to seed new chats."""

    __tablename__ = "master_resumes"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, nullable=False, unique=True, index=True)
    resume_data = Column(SnapshotType, nullable=False)
    parsed_from = Column(String, nullable=False, default="manual")  # pdf | docx | txt | image | manual
    parsed_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
