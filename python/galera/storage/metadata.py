"""Media metadata extraction interface.

Decoding images and reading EXIF data happens outside the core. Whatever
does it hands back a ``MediaMetadata`` through a ``MetadataExtractor``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MediaMetadata:
    """Dimensions and capture time of a media item, when known."""

    width: int | None = None
    height: int | None = None
    taken_at: datetime | None = None


class MetadataExtractor(ABC):
    """Abstract base class for metadata extractors."""

    @abstractmethod
    def extract(self, data: bytes, filename: str) -> MediaMetadata:
        """Extract metadata from raw media bytes. Must not raise on unknown formats."""
        ...


class NullMetadataExtractor(MetadataExtractor):
    """Extractor that knows nothing. Every field is None."""

    def extract(self, data: bytes, filename: str) -> MediaMetadata:
        return MediaMetadata()


class StaticMetadataExtractor(MetadataExtractor):
    """Extractor returning fixed metadata and recording what it was asked. Used by tests."""

    def __init__(self, metadata: MediaMetadata):
        self.metadata = metadata
        self.calls: list[tuple[int, str]] = []

    def extract(self, data: bytes, filename: str) -> MediaMetadata:
        self.calls.append((len(data), filename))
        return self.metadata
