"""Album, invite and share-link schemas.

Passwords are write-only: responses only say whether one is set.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

PermissionValue = Literal["read", "read_write"]

__all__ = [
    "CreateAlbumRequest",
    "UpdateAlbumRequest",
    "AlbumMediaRequest",
    "CreateInviteRequest",
    "CreateShareLinkRequest",
    "UpdateShareLinkRequest",
    "PermissionValue",
    "AlbumOut",
    "AlbumInviteOut",
    "ShareLinkOut",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreateAlbumRequest(BaseModel):
    """Request body for creating an album."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=4000)
    password: str | None = Field(default=None, max_length=128)


class UpdateAlbumRequest(BaseModel):
    """Request body for updating an album. Omitted fields are left unchanged.

    ``password`` set to an empty string removes the album password.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=4000)
    password: str | None = Field(default=None, max_length=128)


class AlbumMediaRequest(BaseModel):
    """Request body naming a media item (membership, thumbnail)."""

    media_id: UUID


class CreateInviteRequest(BaseModel):
    """Request body for inviting a user into an album."""

    user_id: UUID
    write_access: bool = False


class CreateShareLinkRequest(BaseModel):
    """Request body for creating a share link."""

    password: str | None = Field(default=None, max_length=128)
    expires_at: datetime | None = None


class UpdateShareLinkRequest(BaseModel):
    """Request body for updating a share link.

    An empty ``password`` removes protection; ``clear_expiration`` makes the
    link permanent.
    """

    password: str | None = Field(default=None, max_length=128)
    expires_at: datetime | None = None
    clear_expiration: bool = False


# =============================================================================
# Response Schemas
# =============================================================================


class AlbumOut(BaseModel):
    """Response schema for an album, as seen by the caller."""

    link: str
    name: str
    description: str | None
    owner_id: UUID
    thumbnail_link: UUID | None
    is_password_protected: bool
    permission: PermissionValue
    created_at: datetime


class AlbumInviteOut(BaseModel):
    """Response schema for an album invite."""

    album_link: str
    album_name: str
    user_id: UUID
    accepted: bool
    write_access: bool
    created_at: datetime


class ShareLinkOut(BaseModel):
    """Response schema for a share link (owner view)."""

    id: str
    album_link: str
    link: str
    is_password_protected: bool
    is_expired: bool
    expires_at: datetime | None
    created_at: datetime
