from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings


@lru_cache(maxsize=4)
def _engine_for(url: str) -> Engine:
    connect_args: dict[str, object] = {}
    if url.startswith("sqlite"):
        # Request handlers and the threadpool share connections in tests.
        connect_args["check_same_thread"] = False
    # psycopg3 driver uses `postgresql+psycopg://...`
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def get_engine() -> Engine:
    return _engine_for(get_settings().database_url)


def get_sessionmaker() -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables. Production schemas are managed by Alembic."""
    from app.db.models import Base

    Base.metadata.create_all(bind=get_engine())


def dispose_engine() -> None:
    if _engine_for.cache_info().currsize:
        get_engine().dispose()
    _engine_for.cache_clear()
