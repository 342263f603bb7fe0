"""SQLAlchemy engine factory for the record store.

Any SQLAlchemy URL works. SQLite (the local default) gets a thread-safe
connection setup because the weather monitor writes from worker threads;
an in-memory SQLite URL shares a single connection so every session sees
the same database.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool

from ecocapacity.config import DatabaseSettings
from ecocapacity.models.db import Base

logger = logging.getLogger(__name__)


def _is_in_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_db_engine(
    settings: DatabaseSettings | None = None,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """Create a SQLAlchemy engine from database settings.

    Args:
        settings: Database connection settings. If None, uses default settings.
        pool_size: Number of connections to keep in the pool (default: 5, non-SQLite only)
        max_overflow: Max overflow connections beyond pool_size (default: 10, non-SQLite only)

    Returns:
        Configured SQLAlchemy Engine instance
    """
    if settings is None:
        settings = DatabaseSettings()

    if settings.is_sqlite:
        connect_args = {"check_same_thread": False}
        if _is_in_memory(settings.url):
            engine = create_engine(
                settings.url,
                poolclass=StaticPool,
                connect_args=connect_args,
                echo=settings.echo,
            )
        else:
            engine = create_engine(settings.url, connect_args=connect_args, echo=settings.echo)

        @event.listens_for(engine, "connect")
        def enable_foreign_keys(dbapi_connection, _connection_record):
            """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        logger.info(f"Created SQLite engine for {settings.url}")
    else:
        engine = create_engine(
            settings.url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            echo=settings.echo,
        )
        logger.info("Created pooled database engine")

    if settings.create_schema:
        Base.metadata.create_all(engine)
        logger.info("Database schema ensured")

    return engine
