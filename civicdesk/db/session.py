"""Database engine, session factory, unit-of-work helper and dependency injection."""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from civicdesk.core.config import settings
from civicdesk.db.base import Base

logger = logging.getLogger("civicdesk.db")

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=1800,
    echo=False,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back on any exception.

    Domain mutations and the audit record documenting them are written inside
    one ``atomic`` block so they commit or roll back together.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back unit of work", exc_info=True)
        db.rollback()
        raise


def init_db(bind=None) -> None:
    """Create all tables (used by the CLI and tests)."""
    import civicdesk.models  # noqa: F401  register mappers

    Base.metadata.create_all(bind=bind or engine)
