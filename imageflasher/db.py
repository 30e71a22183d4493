"""Attempt history storage.

SQLAlchemy plumbing for the attempt history: the declarative base, engine
and session factory construction, and a transactional session scope. A file
SQLite database gets its parent directory created on first use.
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from imageflasher.config import get_settings


class Base(DeclarativeBase):
    """Base class for all ORM models."""


def _ensure_sqlite_dir(db_url: str) -> None:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return
    if url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def get_engine(db_url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine for the history database.

    Args:
        db_url: Database URL; the configured one if omitted.

    Returns:
        Engine instance.
    """
    if db_url is None:
        db_url = get_settings().db_url

    connect_args: dict[str, Any] = {}
    if db_url.startswith("sqlite"):
        # Outcome listeners may run on a different thread than the one
        # that created the engine
        connect_args["check_same_thread"] = False
        _ensure_sqlite_dir(db_url)

    return create_engine(db_url, connect_args=connect_args)


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Create a session factory bound to an engine."""
    if engine is None:
        engine = get_engine()
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_all_tables(engine: Engine | None = None) -> None:
    """Create the history tables if they do not exist yet."""
    # Models register themselves with Base on import
    from imageflasher.flash import models  # noqa: F401

    if engine is None:
        engine = get_engine()
    Base.metadata.create_all(bind=engine)


def init_history_db(db_url: str | None = None) -> sessionmaker[Session]:
    """Prepare the history database and return a session factory.

    Args:
        db_url: Database URL; the configured one if omitted.

    Returns:
        Session factory bound to a database with all tables created.
    """
    engine = get_engine(db_url)
    create_all_tables(engine)
    return get_session_factory(engine)


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """Run a unit of work: commit on success, roll back on error.

    Yields:
        Session, closed when the block exits.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "create_all_tables",
    "get_engine",
    "get_session_factory",
    "init_history_db",
    "session_scope",
]
