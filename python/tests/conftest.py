"""Pytest configuration and fixtures for Galera tests.

Test isolation strategy:
- Every test gets a fresh in-memory SQLite database (schema from the ORM metadata)
- Service tests use db_session directly
- API tests go through client, which wires the same engine into create_app
- bcrypt runs at its minimum cost so password paths stay fast
"""

import os

os.environ.setdefault("GALERA_ENV", "test")
os.environ.setdefault("PASSWORD_HASH_COST", "4")
os.environ.setdefault("LOG_JSON", "false")

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from galera.app import add_request_id_middleware, create_app
from galera.config import clear_settings_cache
from galera.db.engine import create_db_engine
from galera.db.models import Base
from galera.db.session import create_session_factory
from galera.storage.blobs import InMemoryBlobStore
from galera.storage.metadata import MediaMetadata, StaticMetadataExtractor

TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings so monkeypatched env vars take effect."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a fresh in-memory database with the full schema."""
    engine = create_db_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a database session for service-level tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def metadata_extractor() -> StaticMetadataExtractor:
    return StaticMetadataExtractor(MediaMetadata(width=640, height=480))


@pytest.fixture
def app(
    session_factory: sessionmaker[Session],
    blob_store: InMemoryBlobStore,
    metadata_extractor: StaticMetadataExtractor,
) -> FastAPI:
    """Provide the full application (auth + request-id middleware) on the test database."""
    app = create_app(
        session_factory=session_factory,
        blob_store=blob_store,
        metadata_extractor=metadata_extractor,
    )
    # Add request-id middleware LAST (so it runs FIRST, outermost)
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client.

    Use helpers.register_and_login() to obtain bearer headers.
    """
    with TestClient(app) as client:
        yield client
