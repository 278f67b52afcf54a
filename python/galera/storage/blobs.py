"""Content-addressed blob storage.

Raw media bytes live outside the database. The core only ever sees the
content hash a store hands back: the uppercase hex SHA-512 of the bytes.
"""

import hashlib
import os
import tempfile
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

from galera.config import get_settings

HASH_HEX_LENGTH = 128


def content_hash(data: bytes) -> str:
    """Uppercase hex SHA-512 of ``data``."""
    return hashlib.sha512(data).hexdigest().upper()


class StorageError(Exception):
    """Blob storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class BlobStore(ABC):
    """Abstract base class for blob store implementations."""

    @abstractmethod
    def store(self, data: bytes) -> str:
        """Persist ``data`` and return its content hash.

        Storing the same bytes twice is a no-op returning the same hash.

        Raises:
            StorageError: If the bytes cannot be written.
        """
        ...

    @abstractmethod
    def retrieve(self, hash_: str) -> bytes:
        """Return the bytes stored under ``hash_``.

        Raises:
            StorageError: If nothing is stored under that hash.
        """
        ...

    @abstractmethod
    def exists(self, hash_: str) -> bool:
        """Check whether bytes are stored under ``hash_``."""
        ...


class LocalBlobStore(BlobStore):
    """Blob store backed by a directory tree: ``<root>/<hash[:2]>/<hash>``."""

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)

    def _path_for(self, hash_: str) -> Path:
        if len(hash_) != HASH_HEX_LENGTH or not all(c in "0123456789ABCDEF" for c in hash_):
            raise StorageError(f"Malformed content hash: {hash_!r}", code="E_STORAGE_MISSING")
        return self.root / hash_[:2] / hash_

    def store(self, data: bytes) -> str:
        hash_ = content_hash(data)
        path = self._path_for(hash_)
        if path.exists():
            return hash_

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so a reader never observes a partial blob
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as tmp:
                    tmp.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to store blob: {e}") from e
        return hash_

    def retrieve(self, hash_: str) -> bytes:
        path = self._path_for(hash_)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise StorageError(f"Blob not found: {hash_}", code="E_STORAGE_MISSING") from None
        except OSError as e:
            raise StorageError(f"Failed to read blob: {e}") from e

    def exists(self, hash_: str) -> bool:
        try:
            return self._path_for(hash_).is_file()
        except StorageError:
            return False


class InMemoryBlobStore(BlobStore):
    """Blob store kept in a dict. Used by tests."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    def store(self, data: bytes) -> str:
        hash_ = content_hash(data)
        self._blobs.setdefault(hash_, bytes(data))
        return hash_

    def retrieve(self, hash_: str) -> bytes:
        if hash_ not in self._blobs:
            raise StorageError(f"Blob not found: {hash_}", code="E_STORAGE_MISSING")
        return self._blobs[hash_]

    def exists(self, hash_: str) -> bool:
        return hash_ in self._blobs

    # Test helper methods

    def __len__(self) -> int:
        return len(self._blobs)

    def clear(self) -> None:
        self._blobs.clear()


@lru_cache
def get_blob_store() -> BlobStore:
    """Get the configured blob store (a LocalBlobStore at BLOB_STORE_PATH)."""
    return LocalBlobStore(get_settings().blob_store_path)
