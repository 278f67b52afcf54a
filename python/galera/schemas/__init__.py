"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from galera.schemas.albums import (
    AlbumInviteOut,
    AlbumMediaRequest,
    AlbumOut,
    CreateAlbumRequest,
    CreateInviteRequest,
    CreateShareLinkRequest,
    PermissionValue,
    ShareLinkOut,
    UpdateAlbumRequest,
    UpdateShareLinkRequest,
)
from galera.schemas.auth import (
    IssuedToken,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    SetPasswordRequest,
    TokenPair,
    UserOut,
)
from galera.schemas.folders import CreateFolderRequest, FolderOut, UpdateFolderRequest
from galera.schemas.media import FavoriteOut, MediaOut, UpdateMediaRequest

__all__ = [
    # Auth
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "SetPasswordRequest",
    "UserOut",
    "IssuedToken",
    "TokenPair",
    # Folders
    "CreateFolderRequest",
    "UpdateFolderRequest",
    "FolderOut",
    # Media
    "UpdateMediaRequest",
    "MediaOut",
    "FavoriteOut",
    # Albums
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
