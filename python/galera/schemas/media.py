"""Media-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

__all__ = ["UpdateMediaRequest", "MediaDescriptionRequest", "MediaOut", "FavoriteOut"]


class UpdateMediaRequest(BaseModel):
    """Request body for renaming and/or moving a media item."""

    filename: str | None = Field(default=None, min_length=1, max_length=255)
    folder_id: UUID | None = None


class MediaDescriptionRequest(BaseModel):
    """Request body for setting a media description. Blank clears it."""

    description: str = Field(..., max_length=4000)


class MediaOut(BaseModel):
    """Response schema for a media item.

    ``folder_id`` is only exposed to the owner; album viewers get None.
    """

    id: UUID
    filename: str
    folder_id: UUID | None
    owner_id: UUID
    content_hash: str
    width: int | None
    height: int | None
    taken_at: datetime | None
    description: str | None = None
    created_at: datetime


class FavoriteOut(BaseModel):
    """Response schema for a favorite."""

    media_id: UUID
    created_at: datetime
