"""Access resolution for albums, media and folders.

This module is the single source of truth for who may read or mutate what.
Every service operation calls one of the ``require_*`` functions before it
touches a row on behalf of an actor.

Album permission (first match wins):
1. Actor owns the album -> READ_WRITE
2. Actor holds an accepted invite -> READ_WRITE if write_access else READ
3. A share credential matches a non-expired link of this album (slug compared
   in constant time) and the link has no password or the presented password
   verifies -> READ
4. Otherwise -> NONE

Pending invites grant nothing. A link with no expiration never expires;
otherwise it is valid while ``now < expires_at``.

Media permission: the owner gets READ_WRITE. Anyone else gets the best
permission they hold on an album containing the media, capped at READ.

Folder permission: folders are private to their owner.

Must not leak existence: NONE is reported as the same NotFoundError a missing
row produces. Only callers that can already see the resource get a 403.
"""

from datetime import datetime
from enum import IntEnum

from sqlalchemy import select
from sqlalchemy.orm import Session

from galera.auth.context import Actor, ShareCredential
from galera.auth.passwords import burn_password_check, verify_password
from galera.auth.secrets import tokens_match
from galera.db.models import Album, AlbumInvite, AlbumMedia, AlbumShareLink, Folder, Media
from galera.db.types import utcnow
from galera.errors import ApiErrorCode, ForbiddenError, NotFoundError


class Permission(IntEnum):
    """Totally ordered access level."""

    NONE = 0
    READ = 1
    READ_WRITE = 2


def share_link_is_active(link: AlbumShareLink, now: datetime) -> bool:
    """True while the link has no expiration or ``now`` is before it."""
    return link.expires_at is None or now < link.expires_at


def share_link_grants(link: AlbumShareLink, share: ShareCredential, now: datetime) -> bool:
    """Check a presented share credential against one stored link."""
    if not tokens_match(share.slug, link.link):
        return False
    if not share_link_is_active(link, now):
        return False
    if link.password_hash is None:
        return True
    if not share.password:
        burn_password_check("")
        return False
    return verify_password(share.password, link.password_hash)


def resolve_album_permission(
    db: Session,
    actor: Actor,
    album: Album,
    share: ShareCredential | None = None,
    now: datetime | None = None,
) -> Permission:
    """Resolve the actor's permission on an album.

    ``share`` defaults to the credential carried by the actor.
    """
    if actor.user_id is not None:
        if album.owner_id == actor.user_id:
            return Permission.READ_WRITE

        invite = db.scalar(
            select(AlbumInvite).where(
                AlbumInvite.album_id == album.id,
                AlbumInvite.invited_user_id == actor.user_id,
                AlbumInvite.accepted.is_(True),
            )
        )
        if invite is not None:
            return Permission.READ_WRITE if invite.write_access else Permission.READ

    if share is None:
        share = actor.share
    if share is not None:
        if now is None:
            now = utcnow()
        links = db.scalars(
            select(AlbumShareLink).where(AlbumShareLink.album_id == album.id)
        ).all()
        # Compare against every link of the album rather than looking the slug up
        for link in links:
            if share_link_grants(link, share, now):
                return Permission.READ

    return Permission.NONE


def resolve_media_permission(
    db: Session,
    actor: Actor,
    media: Media,
    share: ShareCredential | None = None,
    now: datetime | None = None,
) -> Permission:
    """Resolve the actor's permission on a media item."""
    if actor.user_id is not None and media.owner_id == actor.user_id:
        return Permission.READ_WRITE

    albums = db.scalars(
        select(Album)
        .join(AlbumMedia, AlbumMedia.album_id == Album.id)
        .where(AlbumMedia.media_id == media.id)
        .order_by(Album.id)
    ).all()

    for album in albums:
        if resolve_album_permission(db, actor, album, share=share, now=now) >= Permission.READ:
            return Permission.READ

    return Permission.NONE


def resolve_folder_permission(db: Session, actor: Actor, folder: Folder) -> Permission:
    """Folders are visible to their owner only."""
    if actor.user_id is not None and folder.owner_id == actor.user_id:
        return Permission.READ_WRITE
    return Permission.NONE


def _enforce(permission: Permission, required: Permission, not_found: NotFoundError) -> Permission:
    if permission == Permission.NONE:
        raise not_found
    if permission < required:
        raise ForbiddenError()
    return permission


def require_album_permission(
    db: Session,
    actor: Actor,
    album: Album,
    required: Permission,
    share: ShareCredential | None = None,
    now: datetime | None = None,
) -> Permission:
    """Resolve and enforce album access. Returns the resolved permission.

    Raises:
        NotFoundError: Actor has no access at all (indistinguishable from missing).
        ForbiddenError: Actor can see the album but not at the required level.
    """
    permission = resolve_album_permission(db, actor, album, share=share, now=now)
    return _enforce(
        permission, required, NotFoundError(ApiErrorCode.E_ALBUM_NOT_FOUND, "Album not found")
    )


def require_media_permission(
    db: Session,
    actor: Actor,
    media: Media,
    required: Permission,
    share: ShareCredential | None = None,
    now: datetime | None = None,
) -> Permission:
    """Resolve and enforce media access. Returns the resolved permission."""
    permission = resolve_media_permission(db, actor, media, share=share, now=now)
    return _enforce(
        permission, required, NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")
    )


def require_folder_permission(
    db: Session, actor: Actor, folder: Folder, required: Permission
) -> Permission:
    """Resolve and enforce folder access. Returns the resolved permission."""
    permission = resolve_folder_permission(db, actor, folder)
    return _enforce(
        permission, required, NotFoundError(ApiErrorCode.E_FOLDER_NOT_FOUND, "Folder not found")
    )
