"""Folder schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

__all__ = ["CreateFolderRequest", "UpdateFolderRequest", "FolderOut"]


class CreateFolderRequest(BaseModel):
    """Request body for creating a folder. Without a parent it goes under the root."""

    name: str = Field(..., min_length=1, max_length=255)
    parent_id: UUID | None = None


class UpdateFolderRequest(BaseModel):
    """Request body for renaming and/or moving a folder."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    parent_id: UUID | None = None


class FolderOut(BaseModel):
    """Response schema for a folder."""

    id: UUID
    name: str
    parent_id: UUID | None
    created_at: datetime
