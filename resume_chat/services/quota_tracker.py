"""Read-only usage projections. Limits are enforced by the caller, not here."""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from resume_chat.repos import history_repo, session_repo


def start_of_utc_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def daily_token_usage(db: Session, user_id: str, now: datetime | None = None) -> int:
    """Characters the user has sent since UTC midnight."""
    since = start_of_utc_day(now)
    return sum(
        len(message or legacy or "")
        for message, legacy in history_repo.messages_since(db, user_id, since)
    )


def active_chat_session_count(db: Session, user_id: str) -> int:
    return session_repo.count_active_for_user(db, user_id)
