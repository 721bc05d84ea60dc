from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from resume_chat.core.security import generate_id
from resume_chat.models.master_resume import MasterResume

UPSERT_DIALECTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def get_by_user(db: Session, user_id: str) -> MasterResume | None:
    return db.query(MasterResume).filter(MasterResume.user_id == user_id).first()


def upsert(db: Session, user_id: str, resume_data: dict, parsed_from: str) -> MasterResume:
    """Create or replace the single master resume of a user in one statement.

    INSERT ... ON CONFLICT (user_id) DO UPDATE, so concurrent first uploads
    for the same user both succeed and the later one wins. The row keeps its
    original id.
    """
    dialect = db.get_bind().dialect.name
    insert = UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Master resume upsert is not supported on {dialect}")

    now = datetime.now(timezone.utc)
    stmt = insert(MasterResume).values(
        id=generate_id(),
        user_id=user_id,
        resume_data=resume_data,
        parsed_from=parsed_from,
        parsed_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[MasterResume.user_id],
        set_={
            "resume_data": stmt.excluded.resume_data,
            "parsed_from": stmt.excluded.parsed_from,
            "parsed_at": stmt.excluded.parsed_at,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    try:
        db.execute(stmt)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return get_by_user(db, user_id)
