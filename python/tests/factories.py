"""Test data factories.

Centralizes helper functions that create rows for tests through the service
layer, so individual tests don't need to know validation rules or schema
requirements. Each factory returns what later calls need (an ``Actor``, an
external id, a slug).
"""

from datetime import datetime
from itertools import count
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from galera.auth.context import Actor, ShareCredential
from galera.db.models import User
from galera.services import albums as albums_service
from galera.services import folders as folders_service
from galera.services import media as media_service
from galera.services import share_links as share_links_service
from galera.services.identity import register_user
from galera.storage.metadata import MediaMetadata

DEFAULT_PASSWORD = "correct horse battery"

_sequence = count(1)


def unique_username(prefix: str = "user") -> str:
    return f"{prefix}_{next(_sequence):05d}"


# =============================================================================
# Users
# =============================================================================


def create_user(
    session: Session,
    username: str | None = None,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
) -> Actor:
    """Register a password user and return an authenticated actor for it."""
    username = username or unique_username()
    email = email or f"{username}@example.com"
    out = register_user(session, username, email, password)
    user_id = session.scalar(select(User.id).where(User.external_id == out.id))
    return Actor(user_id=user_id, user_external_id=out.id)


def share_actor(slug: str, password: str | None = None) -> Actor:
    """Anonymous actor presenting a share-link credential."""
    return Actor.anonymous(share=ShareCredential(slug=slug, password=password))


# =============================================================================
# Content index
# =============================================================================


def root_folder_id(session: Session, actor: Actor) -> UUID:
    return folders_service.get_root_folder(session, actor).id


def create_folder(
    session: Session, actor: Actor, name: str = "Holidays", parent_id: UUID | None = None
) -> UUID:
    return folders_service.create_folder(session, actor, name, parent_id).id


def create_media(
    session: Session,
    actor: Actor,
    content: bytes | str = b"pixels",
    folder_id: UUID | None = None,
    filename: str = "photo.jpg",
    taken_at: datetime | None = None,
) -> UUID:
    """Insert a media item for ``actor`` (into their root folder by default)."""
    if isinstance(content, bytes):
        content_hash = content.hex().upper()
    else:
        content_hash = content
    folder_id = folder_id or root_folder_id(session, actor)
    out = media_service.insert_media(
        session,
        actor.user_id,
        folder_id,
        content_hash,
        MediaMetadata(width=100, height=50, taken_at=taken_at),
        filename,
    )
    return out.id


# =============================================================================
# Album graph
# =============================================================================


def create_album(
    session: Session,
    actor: Actor,
    name: str = "Trip",
    slug: str | None = None,
    password: str | None = None,
) -> str:
    """Create an album and return its link. ``slug`` pins the generated link."""
    slug_factory = (lambda length: slug) if slug else None
    out = albums_service.create_album(
        session, actor, name, password=password, slug_factory=slug_factory
    )
    return out.link


def invite_and_accept(
    session: Session, owner: Actor, album_link: str, invitee: Actor, write_access: bool = False
) -> None:
    albums_service.invite_user(
        session, owner, album_link, invitee.user_external_id, write_access=write_access
    )
    albums_service.accept_invite(session, invitee, album_link)


def create_share_link(
    session: Session,
    owner: Actor,
    album_link: str,
    slug: str | None = None,
    password: str | None = None,
    expires_at: datetime | None = None,
    now: datetime | None = None,
):
    """Create a share link and return its ShareLinkOut."""
    slug_factory = (lambda length: slug) if slug else None
    return share_links_service.create_share_link(
        session,
        owner,
        album_link,
        password=password,
        expires_at=expires_at,
        slug_factory=slug_factory,
        now=now,
    )
