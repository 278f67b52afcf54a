"""FastAPI dependencies for route handlers.

Collaborators (session factory, blob store, metadata extractor) are created
by ``create_app`` and stored on ``app.state``.
"""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from galera.storage.blobs import BlobStore
from galera.storage.metadata import MetadataExtractor

__all__ = ["get_db", "get_blob_store", "get_metadata_extractor"]


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide a database session that is closed after the request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_metadata_extractor(request: Request) -> MetadataExtractor:
    return request.app.state.metadata_extractor
