"""
Engine and session management (SQLAlchemy 2.0).

Repositories never commit. Services end each unit of work with
``safe_commit`` so a failed commit always leaves the session usable.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config.settings import DATABASE_URL


def build_engine(url: str) -> Engine:
    """
    Engine for ``url``.

    SQLite (local runs, tests) only gets cross-thread access; server
    databases get a pool sized to the host, capped at 20.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=min((os.cpu_count() or 4) * 2 + 1, 20),
        max_overflow=15,
        pool_timeout=30,
        pool_recycle=1800,
        connect_args={"connect_timeout": 10},
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for code outside a request (CLI, startup seeding).

        with get_db_context() as db:
            OrderService(db).reconcile_pending()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """Commit, rolling back before re-raising if the commit fails."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
