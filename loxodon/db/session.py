"""SQLAlchemy session management."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from loxodon.core.config import get_settings
from loxodon.obs import instrument_engine

settings = get_settings()
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)
if settings.enable_tracing:
    instrument_engine(engine)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run the enclosed writes as one transaction: commit on success, roll back on error."""

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


__all__ = ["SessionLocal", "atomic", "engine"]
