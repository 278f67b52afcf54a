"""Share link manager.

A share link grants anonymous READ on one album to whoever presents its slug
(and its password, when one is set) before its expiration. Links are created
and managed by the album owner only and disappear with their album.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from galera.auth.context import Actor, ShareCredential
from galera.auth.permissions import Permission, resolve_album_permission, share_link_is_active
from galera.db.models import Album, AlbumShareLink
from galera.db.session import transaction
from galera.db.types import utcnow
from galera.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from galera.logging import get_logger
from galera.schemas.albums import AlbumOut, ShareLinkOut
from galera.services.albums import (
    album_to_out,
    allocate_slug,
    hash_optional_password,
    load_owned_album,
)

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _validate_expiration(expires_at: datetime | None, now: datetime) -> datetime | None:
    if expires_at is None:
        return None
    expires_at = _as_utc(expires_at)
    if expires_at <= now:
        raise InvalidRequestError(
            ApiErrorCode.E_EXPIRATION_INVALID, "Expiration must be in the future"
        )
    return expires_at


def share_link_to_out(album: Album, link: AlbumShareLink, now: datetime) -> ShareLinkOut:
    return ShareLinkOut(
        id=link.external_id,
        album_link=album.link,
        link=link.link,
        is_password_protected=link.password_hash is not None,
        is_expired=not share_link_is_active(link, now),
        expires_at=link.expires_at,
        created_at=link.created_at,
    )


def _load_owned_share_link(
    db: Session, actor: Actor, share_link_external_id: str
) -> tuple[Album, AlbumShareLink]:
    row = db.execute(
        select(Album.link, AlbumShareLink)
        .join(Album, Album.id == AlbumShareLink.album_id)
        .where(AlbumShareLink.external_id == share_link_external_id)
    ).first()
    if row is None:
        raise NotFoundError(ApiErrorCode.E_SHARE_LINK_NOT_FOUND, "Share link not found")
    album_link, link = row
    # Invisible albums surface as the album's masked 404
    album = load_owned_album(db, actor, album_link)
    return album, link


def create_share_link(
    db: Session,
    actor: Actor,
    album_link: str,
    password: str | None = None,
    expires_at: datetime | None = None,
    slug_factory: Callable[[int], str] | None = None,
    now: datetime | None = None,
) -> ShareLinkOut:
    """Create a share link for an album the actor owns.

    An empty ``password`` means no password. A missing ``expires_at`` means
    the link never expires.

    Raises:
        NotFoundError: Album missing or invisible to the actor.
        ForbiddenError: Actor is not the album owner.
        InvalidRequestError: Expiration is not in the future.
        RetryExhaustedError: No unique slug could be allocated.
    """
    now = now or utcnow()
    album = load_owned_album(db, actor, album_link)
    expires_at = _validate_expiration(expires_at, now)
    password_hash = hash_optional_password(password)

    link = allocate_slug(
        db,
        lambda slug: AlbumShareLink(
            external_id=uuid4().hex,
            album_id=album.id,
            link=slug,
            password_hash=password_hash,
            expires_at=expires_at,
        ),
        slug_factory,
    )

    logger.info("share_link_created", album_link=album.link, share_link_id=link.external_id)
    return share_link_to_out(album, link, now)


def list_share_links(
    db: Session, actor: Actor, album_link: str, now: datetime | None = None
) -> list[ShareLinkOut]:
    """List the share links of an album the actor owns, oldest first."""
    now = now or utcnow()
    album = load_owned_album(db, actor, album_link)
    links = db.scalars(
        select(AlbumShareLink)
        .where(AlbumShareLink.album_id == album.id)
        .order_by(AlbumShareLink.created_at, AlbumShareLink.id)
    ).all()
    return [share_link_to_out(album, link, now) for link in links]


def update_share_link(
    db: Session,
    actor: Actor,
    share_link_external_id: str,
    password: str | None = None,
    expires_at: datetime | None = None,
    clear_expiration: bool = False,
    now: datetime | None = None,
) -> ShareLinkOut:
    """Change a share link's password and/or expiration.

    ``password`` None leaves it unchanged, an empty string removes it.
    ``expires_at`` None leaves it unchanged unless ``clear_expiration`` is set.
    """
    now = now or utcnow()
    new_expiration = _validate_expiration(expires_at, now)

    with transaction(db):
        album, link = _load_owned_share_link(db, actor, share_link_external_id)
        if password is not None:
            link.password_hash = hash_optional_password(password)
        if clear_expiration:
            link.expires_at = None
        elif new_expiration is not None:
            link.expires_at = new_expiration

    logger.info("share_link_updated", share_link_id=link.external_id)
    return share_link_to_out(album, link, now)


def delete_share_link(db: Session, actor: Actor, share_link_external_id: str) -> None:
    """Delete a share link. Holders of its slug lose access immediately."""
    with transaction(db):
        _, link = _load_owned_share_link(db, actor, share_link_external_id)
        db.execute(delete(AlbumShareLink).where(AlbumShareLink.id == link.id))

    logger.info("share_link_deleted", share_link_id=share_link_external_id)


def open_share_link(
    db: Session, slug: str, password: str | None = None, now: datetime | None = None
) -> AlbumOut:
    """Resolve a share-link slug (and password) to the album it grants.

    Unknown slugs, wrong passwords and expired links all produce the same
    NotFoundError.
    """
    now = now or utcnow()
    album = db.scalar(
        select(Album)
        .join(AlbumShareLink, AlbumShareLink.album_id == Album.id)
        .where(AlbumShareLink.link == slug)
    )
    if album is None:
        raise NotFoundError(ApiErrorCode.E_SHARE_LINK_NOT_FOUND, "Share link not found")

    share = ShareCredential(slug=slug, password=password or None)
    permission = resolve_album_permission(db, Actor.anonymous(share=share), album, now=now)
    if permission < Permission.READ:
        raise NotFoundError(ApiErrorCode.E_SHARE_LINK_NOT_FOUND, "Share link not found")

    return album_to_out(db, album, permission)
