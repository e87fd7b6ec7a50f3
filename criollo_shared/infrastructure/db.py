"""
SQLAlchemy engine, session factory and the session dependencies.

PostgreSQL is the production database; SQLite works for local experiments
and the test suite.
"""

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from criollo_shared.config.settings import settings


def _engine_for(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(
            url, echo=settings.database_echo, connect_args={"check_same_thread": False}
        )
    return create_engine(
        url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=min((os.cpu_count() or 4) * 2 + 1, 20),
        max_overflow=15,
        pool_timeout=30,
        pool_recycle=1800,
        connect_args={"connect_timeout": 10},
    )


engine = _engine_for(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


@contextmanager
def get_db_context() -> Iterator[Session]:
    """Session for code outside a request (CLI commands, startup seeding)."""
    with SessionLocal() as db:
        yield db


def get_db() -> Iterator[Session]:
    """Request-scoped session dependency."""
    with SessionLocal() as db:
        yield db


def get_session_factory() -> sessionmaker:
    """
    The factory itself, for background email delivery that runs after the
    request session has been closed.
    """
    return SessionLocal


def safe_commit(db: Session) -> None:
    """Commit, rolling back before re-raising on failure."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
