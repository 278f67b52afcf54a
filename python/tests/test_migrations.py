"""Tests for database migrations.

Each test migrates its own SQLite file, so they can upgrade and downgrade
freely without touching the in-memory databases other tests use.
"""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import Engine, func, inspect, select
from sqlalchemy.orm import Session

from galera.db.engine import create_db_engine
from galera.db.models import Base, Folder, Media, RefreshToken
from galera.db.session import create_session_factory
from galera.services.identity import delete_user
from tests.factories import create_media, create_user

MIGRATIONS_INI = Path(__file__).resolve().parents[2] / "migrations" / "alembic.ini"


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'migrations.db'}"


@pytest.fixture
def alembic_config(database_url: str) -> Config:
    config = Config(str(MIGRATIONS_INI))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


@pytest.fixture
def migrated_engine(alembic_config: Config, database_url: str):
    command.upgrade(alembic_config, "head")
    engine = create_db_engine(database_url)
    yield engine
    engine.dispose()


class TestUpgrade:
    def test_upgrade_creates_every_model_table(self, migrated_engine: Engine):
        tables = set(inspect(migrated_engine).get_table_names())

        assert tables - {"alembic_version"} == set(Base.metadata.tables)

    def test_columns_match_models(self, migrated_engine: Engine):
        inspector = inspect(migrated_engine)

        for name, table in Base.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == set(table.columns.keys()), name

    def test_user_deletion_cascades(self, migrated_engine: Engine):
        session: Session = create_session_factory(migrated_engine)()
        try:
            actor = create_user(session)
            create_media(session, actor)
            assert session.scalar(select(func.count()).select_from(Folder)) == 1

            delete_user(session, actor.user_external_id)

            for model in (Folder, Media, RefreshToken):
                assert session.scalar(select(func.count()).select_from(model)) == 0
        finally:
            session.close()


class TestDowngrade:
    def test_downgrade_to_base_drops_everything(
        self, alembic_config: Config, migrated_engine: Engine
    ):
        command.downgrade(alembic_config, "base")

        assert set(inspect(migrated_engine).get_table_names()) <= {"alembic_version"}

    def test_upgrade_after_downgrade(self, alembic_config: Config, migrated_engine: Engine):
        command.downgrade(alembic_config, "base")
        command.upgrade(alembic_config, "head")

        tables = set(inspect(migrated_engine).get_table_names())
        assert set(Base.metadata.tables) <= tables
