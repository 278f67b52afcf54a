"""Database module for Galera.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from galera.db.engine import create_db_engine, get_engine
from galera.db.models import (
    AccessToken,
    Album,
    AlbumInvite,
    AlbumMedia,
    AlbumShareLink,
    Base,
    FavoriteMedia,
    FederatedIdentity,
    Folder,
    Media,
    MediaContent,
    RefreshToken,
    User,
)
from galera.db.session import create_session_factory, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "create_session_factory",
    "transaction",
    # Base
    "Base",
    # Identity
    "User",
    "FederatedIdentity",
    "RefreshToken",
    "AccessToken",
    # Content index
    "Folder",
    "MediaContent",
    "Media",
    "FavoriteMedia",
    # Album graph
    "Album",
    "AlbumMedia",
    "AlbumInvite",
    "AlbumShareLink",
]
