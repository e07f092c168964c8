"""Database engine/session helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from models.base import Base


def create_db_engine(db_url: str) -> Engine:
    """Create a SQLAlchemy engine; SQLite URLs get thread-safe test-friendly options."""
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite":
        options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return create_engine(db_url, future=True, **options)
    return create_engine(db_url, pool_pre_ping=True, future=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the provided engine."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def ensure_schema(engine: Engine) -> None:
    """Create all ladder tables and indexes if they do not exist."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll it all back on error."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
