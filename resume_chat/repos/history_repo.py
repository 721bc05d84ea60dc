"""Append-only access to history_entries: no update or delete here."""

from datetime import datetime
from typing import Callable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from resume_chat.core.security import generate_id
from resume_chat.models.history_entry import HistoryEntry


def append(
    db: Session,
    user_id: str,
    chat_id: str | None,
    *,
    entry_type: str = "enhance",
    message: str = "",
    assistant_message: str = "",
    original_resume: dict | None = None,
    enhanced_resume: dict | None = None,
    resume_html: str | None = None,
    enhanced_html: str | None = None,
    template_id: str | None = None,
    processing_time_ms: int | None = None,
) -> HistoryEntry:
    entry = HistoryEntry(
        id=generate_id(),
        chat_id=chat_id,
        user_id=user_id,
        entry_type=entry_type,
        message=message,
        assistant_message=assistant_message,
        original_resume=original_resume,
        enhanced_resume=enhanced_resume,
        resume_html=resume_html,
        enhanced_html=enhanced_html,
        template_id=template_id,
        processing_time_ms=processing_time_ms,
    )
    db.add(entry)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    return entry


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def query_by_chat(
    db: Session,
    chat_id: str,
    user_id: str | None = None,
    *,
    search: str | None = None,
    template_id: str | None = None,
    sort_order: str = "asc",
    page: int | None = None,
    page_size: int | None = None,
) -> list[HistoryEntry]:
    q = db.query(HistoryEntry).filter(HistoryEntry.chat_id == chat_id)
    if user_id is not None:
        q = q.filter(HistoryEntry.user_id == user_id)
    if template_id:
        q = q.filter(HistoryEntry.template_id == template_id)
    if search and search.strip():
        pattern = f"%{_escape_like(search.strip())}%"
        q = q.filter(
            or_(
                HistoryEntry.message.ilike(pattern, escape="\\"),
                HistoryEntry.legacy_user_message.ilike(pattern, escape="\\"),
            )
        )
    if (sort_order or "").lower() == "desc":
        q = q.order_by(HistoryEntry.created_at.desc())
    else:
        q = q.order_by(HistoryEntry.created_at.asc())
    if page is not None and page_size is not None:
        q = q.offset((page - 1) * page_size).limit(page_size)
    return q.all()


def query_standalone(db: Session, user_id: str, page: int = 1, page_size: int = 10) -> list[HistoryEntry]:
    """Chat-less entries of a user, newest first."""
    return (
        db.query(HistoryEntry)
        .filter(HistoryEntry.user_id == user_id, HistoryEntry.chat_id.is_(None))
        .order_by(HistoryEntry.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )


def query_latest(
    db: Session,
    chat_id: str,
    predicate: Callable[[HistoryEntry], bool] | None = None,
    user_id: str | None = None,
) -> HistoryEntry | None:
    """Newest entry of a chat, or the newest one satisfying `predicate`."""
    q = db.query(HistoryEntry).filter(HistoryEntry.chat_id == chat_id)
    if user_id is not None:
        q = q.filter(HistoryEntry.user_id == user_id)
    q = q.order_by(HistoryEntry.created_at.desc())
    if predicate is None:
        return q.first()
    for entry in q:
        if predicate(entry):
            return entry
    return None


def get_for_user(db: Session, history_id: str, user_id: str) -> HistoryEntry | None:
    return (
        db.query(HistoryEntry)
        .filter(HistoryEntry.id == history_id, HistoryEntry.user_id == user_id)
        .first()
    )


def count_by_chat(db: Session, chat_id: str, user_id: str) -> int:
    return (
        db.query(HistoryEntry)
        .filter(HistoryEntry.chat_id == chat_id, HistoryEntry.user_id == user_id)
        .count()
    )


def messages_since(db: Session, user_id: str, since: datetime) -> list[tuple[str | None, str | None]]:
    """(message, legacy_user_message) pairs for every entry a user created since `since`."""
    rows = (
        db.query(HistoryEntry.message, HistoryEntry.legacy_user_message)
        .filter(HistoryEntry.user_id == user_id, HistoryEntry.created_at >= since)
        .all()
    )
    return [(row[0], row[1]) for row in rows]
