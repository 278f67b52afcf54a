"""SQLAlchemy ORM models for Galera.

Defines all database tables using SQLAlchemy 2.x declarative patterns.

Ownership and membership edges are plain foreign keys with ON DELETE rules;
deleting a user, album, folder or refresh token is a single DELETE and the
store removes everything hanging off it. Internal integer ids never leave
the service layer; callers address rows by ``external_id`` (or ``link``).
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from galera.db.types import UTCDateTime, utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Identity
# =============================================================================


class User(Base):
    """User account.

    ``password_hash`` is NULL for accounts that only ever signed in through a
    federated identity provider.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[UUID] = mapped_column(Uuid, unique=True, nullable=False, default=uuid4)
    username: Mapped[str | None] = mapped_column(String(30), unique=True, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class FederatedIdentity(Base):
    """Link between an external (provider, subject) pair and a local user."""

    __tablename__ = "federated_identities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    provider_key: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "provider_key", "subject", name="uq_federated_identities_provider_subject"
        ),
    )


class RefreshToken(Base):
    """Long-lived credential. Only the SHA-256 digest of the secret is stored."""

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class AccessToken(Base):
    """Short-lived credential minted from (and revoked with) a refresh token."""

    __tablename__ = "access_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    refresh_token_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("refresh_tokens.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


# =============================================================================
# Content index
# =============================================================================


class Folder(Base):
    """Node of a user's folder tree. ``parent_id`` is NULL only for roots."""

    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[UUID] = mapped_column(Uuid, unique=True, nullable=False, default=uuid4)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class MediaContent(Base):
    """One row per distinct byte content an owner has uploaded."""

    __tablename__ = "media_contents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("owner_id", "content_hash", name="uq_media_contents_owner_hash"),
    )


class Media(Base):
    """A media item placed in a folder.

    ``album_id`` is a legacy single-album pointer kept for schema parity; album
    membership lives in AlbumMedia and the services never set it. Deleting the
    album it points at clears it (SET NULL).
    """

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[UUID] = mapped_column(Uuid, unique=True, nullable=False, default=uuid4)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    folder_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=False
    )
    album_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="SET NULL"), nullable=True
    )
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("media_contents.id", ondelete="CASCADE"), nullable=False
    )
    content_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    taken_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("folder_id", "content_id", name="uq_media_folder_content"),
        Index("ix_media_content_hash", "content_hash"),
    )


class FavoriteMedia(Base):
    """A user's bookmark on a media item."""

    __tablename__ = "favorite_media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    media_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("media.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("media_id", "user_id", name="uq_favorite_media_pair"),)


# =============================================================================
# Album graph
# =============================================================================


class Album(Base):
    """Owned collection of media, addressed by its ``link`` slug.

    ``thumbnail_link`` points at a media external id and is cleared when that
    media item is deleted; the media item does not have to be a member.
    """

    __tablename__ = "albums"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    thumbnail_link: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey(
            "media.external_id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_albums_thumbnail_link_media",
        ),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class AlbumMedia(Base):
    """Membership of a media item in an album."""

    __tablename__ = "album_media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False
    )
    media_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("media.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("album_id", "media_id", name="uq_album_media_pair"),)


class AlbumInvite(Base):
    """Invitation of a user into an album. Grants nothing until accepted."""

    __tablename__ = "album_invites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False
    )
    invited_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    write_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("album_id", "invited_user_id", name="uq_album_invites_album_user"),
    )


class AlbumShareLink(Base):
    """Anonymous read grant on an album, optionally password protected and expiring."""

    __tablename__ = "album_share_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False, index=True
    )
    link: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
