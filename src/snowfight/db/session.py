"""Database session management for the leaderboard."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import get_settings

Base = declarative_base()
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def configure_engine(database_url: Optional[str] = None) -> None:
    """Initialise the SQLAlchemy engine from configuration.

    Passing ``database_url`` replaces any engine configured earlier.
    """

    global _engine, _SessionLocal
    if _engine is not None and database_url is None:
        return
    if _engine is not None:
        _engine.dispose()
    url = database_url or get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    _engine = create_engine(url, future=True, connect_args=connect_args)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False, future=True)


def init_db() -> None:
    """Create database tables if they do not already exist."""

    if _engine is None:
        configure_engine()
    if _engine is None:
        raise RuntimeError("Database engine could not be initialised")
    from . import models  # noqa: F401  registers tables on Base

    Base.metadata.create_all(bind=_engine)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""

    if _SessionLocal is None:
        configure_engine()
    if _SessionLocal is None:
        raise RuntimeError("Database session factory is not initialised")
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
