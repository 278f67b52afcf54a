"""Storage module: content-addressed blob stores and the metadata interface.

Provides:
- BlobStore with LocalBlobStore and InMemoryBlobStore implementations
- content_hash (uppercase hex SHA-512)
- MetadataExtractor / MediaMetadata
"""

from galera.storage.blobs import (
    BlobStore,
    InMemoryBlobStore,
    LocalBlobStore,
    StorageError,
    content_hash,
    get_blob_store,
)
from galera.storage.metadata import (
    MediaMetadata,
    MetadataExtractor,
    NullMetadataExtractor,
    StaticMetadataExtractor,
)

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "InMemoryBlobStore",
    "StorageError",
    "content_hash",
    "get_blob_store",
    "MediaMetadata",
    "MetadataExtractor",
    "NullMetadataExtractor",
    "StaticMetadataExtractor",
]
