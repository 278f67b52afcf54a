"""Alembic environment.

Targets ``galera.db.models.Base.metadata``. The URL is taken from the
``sqlalchemy.url`` option when one is set, otherwise from DATABASE_URL.
"""

from alembic import context

from galera.config import get_settings
from galera.db.engine import create_db_engine
from galera.db.models import Base

config = context.config
target_metadata = Base.metadata


def get_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_settings().database_url


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # Same engine setup as the application (SQLite foreign keys enabled)
    connectable = create_db_engine(get_url())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
