"""Database connection and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gradebook.core.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


def _engine_options() -> dict[str, Any]:
    """Pool and timeout options for the configured backend."""
    timeout = settings.DB_STATEMENT_TIMEOUT_SECONDS
    if settings.is_sqlite:
        # In-memory databases must share one connection across sessions
        return {
            "connect_args": {"check_same_thread": False, "timeout": timeout},
            "poolclass": StaticPool,
        }
    return {
        "connect_args": {"options": f"-c statement_timeout={timeout * 1000}"},
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


# Note: echo=False to disable SQL logging; use the service loggers for debug logs
engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    **_engine_options(),
)

SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency.

    Everything written during one request commits together, so the update
    and insert batches of a bulk save are applied atomically.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

