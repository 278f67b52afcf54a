"""Authentication and authorization module.

This module provides:
- Actor / ShareCredential request identity values
- Auth middleware for FastAPI
- The access resolver (album, media and folder permissions)
"""

from galera.auth.context import Actor, ShareCredential
from galera.auth.middleware import AuthMiddleware, get_actor, get_optional_actor
from galera.auth.permissions import (
    Permission,
    require_album_permission,
    require_folder_permission,
    require_media_permission,
    resolve_album_permission,
    resolve_folder_permission,
    resolve_media_permission,
)

__all__ = [
    "Actor",
    "ShareCredential",
    "AuthMiddleware",
    "get_actor",
    "get_optional_actor",
    "Permission",
    "resolve_album_permission",
    "resolve_media_permission",
    "resolve_folder_permission",
    "require_album_permission",
    "require_media_permission",
    "require_folder_permission",
]
