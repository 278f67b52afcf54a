"""SQLAlchemy engine creation and configuration.

The engine is created once at application startup and provides
connection pooling for all database operations.
"""

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from galera.config import get_settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Cascading deletes rely on the store enforcing foreign keys
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine with the given URL.

    Args:
        database_url: Connection string. If None, uses settings.

    Returns:
        Configured SQLAlchemy engine.

    Note:
        SQLite engines get ``PRAGMA foreign_keys=ON`` on every connection.
        In-memory SQLite URLs share a single connection so that every session
        sees the same database.
    """
    if database_url is None:
        database_url = get_settings().database_url

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True, echo=False)

    kwargs: dict = {"connect_args": {"check_same_thread": False}, "echo": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@lru_cache
def get_engine() -> Engine:
    """Get the cached database engine."""
    return create_db_engine()
