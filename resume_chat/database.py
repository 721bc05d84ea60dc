"""Engine, per-request sessions and the worker-thread bridge.

The ORM is synchronous. Routes are async because AI calls are awaited, so
every query or commit made on behalf of a request goes through
`run_blocking`, which hands it to the threadpool. A request's Session is
only ever used by one thread at a time.
"""

import logging
from typing import Any, Callable, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base

from resume_chat.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _connect_args(url: str) -> dict:
    # Worker threads reuse the connection checked out by the request.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run ORM or file-parsing work in the threadpool instead of on the event loop."""
    return await run_in_threadpool(fn, *args, **kwargs)


def _register_models() -> None:
    from resume_chat.models import (  # noqa: F401
        ChatSession,
        HistoryEntry,
        MasterResume,
    )


def init_db():
    _register_models()
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized: %s", ", ".join(sorted(Base.metadata.tables)))
    except Exception as e:
        logger.exception("Database initialization failed: %s", e)
        raise


def ensure_tables_exist() -> list[str]:
    """Create missing chat tables; existing ones and their rows are left alone."""
    _register_models()
    try:
        before = set(inspect(engine).get_table_names())
        Base.metadata.create_all(bind=engine)
        created = sorted(set(Base.metadata.tables.keys()) - before)
    except Exception as e:
        logger.exception("Ensure tables failed: %s", e)
        raise
    if created:
        logger.info("Created missing chat tables: %s", ", ".join(created))
    else:
        logger.info("Chat tables already present; schema unchanged.")
    return created
