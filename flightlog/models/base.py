"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Designed to be portable between SQLite (dev) and PostgreSQL (prod).
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional

from sqlalchemy import DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session
from sqlalchemy.types import TypeDecorator

from flightlog.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class UTCDateTime(TypeDecorator):
    """
    Timestamp column that always holds UTC.

    Values are converted to UTC and stored without offset; they come back
    as timezone-aware UTC datetimes regardless of the backend. Naive input
    is assumed to already be UTC.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite connections.

    Foreign keys must be switched on per connection for leg and seat
    cascades to fire.
    """
    cursor = dbapi_connection.cursor()
    # Write-Ahead Logging for concurrent access
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def make_engine(url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, applying SQLite connection settings when needed."""
    if url.startswith('sqlite'):
        kwargs.setdefault('connect_args', {'check_same_thread': False})

    new_engine = create_engine(url, echo=echo, **kwargs)

    if url.startswith('sqlite'):
        event.listen(new_engine, 'connect', _set_sqlite_pragma)

    return new_engine


engine = make_engine(config.database.url, echo=config.debug)


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Avoid lazy loading issues
)


@contextmanager
def get_session(session_factory: sessionmaker = SessionLocal) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_session() as session:
            session.execute(...)

    Automatically handles commit/rollback and session cleanup.
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


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize database schema.

    Creates all tables if they don't exist. For production,
    use Alembic migrations instead.
    """
    Base.metadata.create_all(bind=bind or engine)
