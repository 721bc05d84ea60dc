from datetime import datetime, timezone

from sqlalchemy.orm import Session

from resume_chat.core.security import generate_id
from resume_chat.models.chat_session import ChatSession

DEFAULT_TITLE = "New Chat"


def new_session(user_id: str, template_id: str | None = None, title: str = DEFAULT_TITLE) -> ChatSession:
    """Build a session without persisting it."""
    now = datetime.now(timezone.utc)
    return ChatSession(
        id=generate_id(),
        user_id=user_id,
        title=title,
        template_id=template_id,
        is_active=True,
        is_deleted=False,
        title_auto_set=False,
        created_at=now,
        updated_at=now,
    )


def create(db: Session, session: ChatSession) -> ChatSession:
    db.add(session)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(session)
    return session


def get_active_for_user(db: Session, chat_id: str, user_id: str) -> ChatSession | None:
    """Non-deleted session owned by `user_id`."""
    return (
        db.query(ChatSession)
        .filter(
            ChatSession.id == chat_id,
            ChatSession.user_id == user_id,
            ChatSession.is_deleted.is_(False),
        )
        .first()
    )


def list_active_for_user(db: Session, user_id: str, page: int = 1, page_size: int = 20) -> list[ChatSession]:
    return (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user_id, ChatSession.is_deleted.is_(False))
        .order_by(ChatSession.updated_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )


def count_active_for_user(db: Session, user_id: str) -> int:
    return (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user_id, ChatSession.is_deleted.is_(False))
        .count()
    )


def _commit(db: Session, session: ChatSession) -> ChatSession:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(session)
    return session


def touch(db: Session, session: ChatSession, template_id: str | None = None) -> ChatSession:
    session.updated_at = datetime.now(timezone.utc)
    if template_id:
        session.template_id = template_id
    return _commit(db, session)


def set_title(db: Session, session: ChatSession, title: str) -> ChatSession:
    """Set the title and lock it against automatic generation."""
    session.title = title
    session.title_auto_set = True
    session.updated_at = datetime.now(timezone.utc)
    return _commit(db, session)


def tombstone(db: Session, chat_id: str, user_id: str) -> bool:
    """Soft-delete a session. Returns False if it does not exist or is already deleted."""
    session = get_active_for_user(db, chat_id, user_id)
    if not session:
        return False
    session.is_deleted = True
    session.is_active = False
    session.updated_at = datetime.now(timezone.utc)
    _commit(db, session)
    return True
