from datetime import datetime, timezone

from sqlalchemy import JSON, BigInteger, Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from resume_chat.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
SnapshotType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(Base):
    """One immutable turn of a chat: user message, reply, and before/after snapshots."""

    __tablename__ = "history_entries"

    id = Column(String, primary_key=True, index=True)
    chat_id = Column(String, nullable=True)  # null for legacy, chat-less history
    user_id = Column(String, nullable=False)
    entry_type = Column(String, nullable=False, default="enhance")  # enhance | save | seed
    message = Column(Text, nullable=False, default="")
    legacy_user_message = Column(Text)  # read-only field kept from older rows
    assistant_message = Column(Text, nullable=False, default="")
    original_resume = Column(SnapshotType)
    enhanced_resume = Column(SnapshotType)
    resume_html = Column(Text)
    enhanced_html = Column(Text)
    template_id = Column(String)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    processing_time_ms = Column(BigInteger)

    __table_args__ = (
        Index("ix_history_entries_chat_created", "chat_id", "created_at"),
        Index("ix_history_entries_user_created", "user_id", "created_at"),
    )

    @property
    def user_message(self) -> str:
        return self.message or self.legacy_user_message or ""
