"""Album service layer (album graph).

Albums are owned collections of media addressed by a random ``link`` slug.
Access comes from ownership, accepted invites or share links; every
operation resolves it through ``galera.auth.permissions`` first.

Permission requirements:
- view album / list its media: READ
- rename, describe, add/remove media, set thumbnail: READ_WRITE
- delete, change password, manage invites and share links: owner only

Slug allocation is optimistic: insert with a fresh random slug and retry on
a unique-constraint collision, up to MAX_SLUG_RETRIES attempts.
"""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.auth.passwords import hash_password
from galera.auth.permissions import (
    Permission,
    require_album_permission,
    require_media_permission,
)
from galera.auth.secrets import generate_slug
from galera.config import get_settings
from galera.db.models import Album, AlbumInvite, AlbumMedia, Media, User
from galera.db.session import transaction
from galera.errors import (
    ApiErrorCode,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    RetryExhaustedError,
    UnauthenticatedError,
)
from galera.logging import get_logger
from galera.schemas.albums import AlbumInviteOut, AlbumOut, PermissionValue
from galera.schemas.media import MediaOut
from galera.services.identity import get_user_by_external_id
from galera.services.media import load_media, media_out_for, media_query, to_media_out

logger = get_logger(__name__)

SlugFactory = Callable[[int], str]

MAX_ALBUM_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 4000

PERMISSION_VALUES: dict[Permission, PermissionValue] = {
    Permission.READ: "read",
    Permission.READ_WRITE: "read_write",
}


def _validate_name(name: str) -> str:
    name = name.strip()
    if not name or len(name) > MAX_ALBUM_NAME_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_NAME_INVALID, f"Name must be 1-{MAX_ALBUM_NAME_LENGTH} characters"
        )
    return name


def _normalize_description(description: str | None) -> str | None:
    if description is None:
        return None
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
        )
    return description or None


def hash_optional_password(password: str | None) -> str | None:
    """Hash a password, treating None and the empty string as 'no password'."""
    if not password:
        return None
    return hash_password(password)


def allocate_slug(
    db: Session,
    build_row: Callable[[str], object],
    slug_factory: SlugFactory | None = None,
) -> object:
    """Insert a row keyed by a fresh random slug, retrying on collisions.

    Args:
        db: Database session.
        build_row: Function(slug) -> new ORM object to insert.
        slug_factory: Function(length) -> slug. Defaults to a random URL-safe slug.

    Returns:
        The inserted (committed) ORM object.

    Raises:
        RetryExhaustedError: Every attempt collided.
    """
    settings = get_settings()
    factory = slug_factory or generate_slug

    for attempt in range(1, settings.max_slug_retries + 1):
        row = build_row(factory(settings.share_link_slug_length))
        try:
            with transaction(db):
                db.add(row)
            return row
        except IntegrityError:
            logger.warning("slug_collision", attempt=attempt, table=type(row).__tablename__)

    logger.error("slug_retries_exhausted", attempts=settings.max_slug_retries)
    raise RetryExhaustedError()


# =============================================================================
# Loading and access
# =============================================================================


def load_album(db: Session, album_link: str) -> Album:
    """Load an album row by link or raise NotFoundError."""
    album = db.scalar(select(Album).where(Album.link == album_link))
    if album is None:
        raise NotFoundError(ApiErrorCode.E_ALBUM_NOT_FOUND, "Album not found")
    return album


def load_visible_album(
    db: Session,
    actor: Actor,
    album_link: str,
    required: Permission,
    now: datetime | None = None,
) -> tuple[Album, Permission]:
    """Load an album and enforce the actor's access (masked 404 when invisible)."""
    album = load_album(db, album_link)
    permission = require_album_permission(db, actor, album, required, now=now)
    return album, permission


def load_owned_album(db: Session, actor: Actor, album_link: str) -> Album:
    """Load an album the actor owns.

    Raises:
        NotFoundError: Album missing or invisible to the actor.
        ForbiddenError: Actor can see the album but does not own it.
    """
    album, _ = load_visible_album(db, actor, album_link, Permission.READ)
    if album.owner_id != actor.user_id:
        raise ForbiddenError(ApiErrorCode.E_FORBIDDEN, "Only the album owner can do this")
    return album


def album_to_out(db: Session, album: Album, permission: Permission) -> AlbumOut:
    owner_external_id = db.scalar(select(User.external_id).where(User.id == album.owner_id))
    return AlbumOut(
        link=album.link,
        name=album.name,
        description=album.description,
        owner_id=owner_external_id,
        thumbnail_link=album.thumbnail_link,
        is_password_protected=album.password_hash is not None,
        permission=PERMISSION_VALUES[permission],
        created_at=album.created_at,
    )


# =============================================================================
# Albums
# =============================================================================


def create_album(
    db: Session,
    actor: Actor,
    name: str,
    description: str | None = None,
    password: str | None = None,
    slug_factory: SlugFactory | None = None,
) -> AlbumOut:
    """Create an album owned by the actor.

    Raises:
        UnauthenticatedError: Anonymous actor or unknown user.
        RetryExhaustedError: No unique link could be allocated.
    """
    if actor.user_id is None or db.get(User, actor.user_id) is None:
        raise UnauthenticatedError()

    name = _validate_name(name)
    description = _normalize_description(description)
    password_hash = hash_optional_password(password)

    album = allocate_slug(
        db,
        lambda slug: Album(
            owner_id=actor.user_id,
            name=name,
            description=description,
            link=slug,
            password_hash=password_hash,
        ),
        slug_factory,
    )

    logger.info("album_created", album_link=album.link)
    return album_to_out(db, album, Permission.READ_WRITE)


def get_album(
    db: Session, actor: Actor, album_link: str, now: datetime | None = None
) -> AlbumOut:
    """Get an album the actor can read (owner, invitee or share-link holder)."""
    album, permission = load_visible_album(db, actor, album_link, Permission.READ, now=now)
    return album_to_out(db, album, permission)


def list_albums(db: Session, actor: Actor) -> list[AlbumOut]:
    """List albums the actor owns or has accepted an invite to, newest first."""
    if actor.user_id is None:
        raise UnauthenticatedError()

    invited_album_ids = select(AlbumInvite.album_id).where(
        AlbumInvite.invited_user_id == actor.user_id,
        AlbumInvite.accepted.is_(True),
    )
    rows = db.execute(
        select(Album, User.external_id, AlbumInvite.write_access)
        .join(User, User.id == Album.owner_id)
        .outerjoin(
            AlbumInvite,
            (AlbumInvite.album_id == Album.id) & (AlbumInvite.invited_user_id == actor.user_id),
        )
        .where(or_(Album.owner_id == actor.user_id, Album.id.in_(invited_album_ids)))
        .order_by(Album.created_at.desc(), Album.id.desc())
    ).all()

    albums = []
    for album, owner_external_id, write_access in rows:
        if album.owner_id == actor.user_id or write_access:
            permission = Permission.READ_WRITE
        else:
            permission = Permission.READ
        albums.append(
            AlbumOut(
                link=album.link,
                name=album.name,
                description=album.description,
                owner_id=owner_external_id,
                thumbnail_link=album.thumbnail_link,
                is_password_protected=album.password_hash is not None,
                permission=PERMISSION_VALUES[permission],
                created_at=album.created_at,
            )
        )
    return albums


def update_album(
    db: Session,
    actor: Actor,
    album_link: str,
    name: str | None = None,
    description: str | None = None,
    password: str | None = None,
) -> AlbumOut:
    """Update album fields. None leaves a field unchanged.

    An empty ``description`` clears it; an empty ``password`` removes it.
    Changing the password is reserved to the owner.
    """
    if name is not None:
        name = _validate_name(name)

    with transaction(db):
        album, permission = load_visible_album(db, actor, album_link, Permission.READ_WRITE)
        if name is not None:
            album.name = name
        if description is not None:
            album.description = _normalize_description(description)
        if password is not None:
            if album.owner_id != actor.user_id:
                raise ForbiddenError(
                    ApiErrorCode.E_FORBIDDEN, "Only the album owner can change the password"
                )
            album.password_hash = hash_optional_password(password)

    logger.info("album_updated", album_link=album.link)
    return album_to_out(db, album, permission)


def delete_album(db: Session, actor: Actor, album_link: str) -> None:
    """Delete an album. Memberships, invites and share links cascade."""
    with transaction(db):
        album = load_owned_album(db, actor, album_link)
        db.execute(delete(Album).where(Album.id == album.id))
    db.expire_all()

    logger.info("album_deleted", album_link=album_link)


# =============================================================================
# Membership and thumbnail
# =============================================================================


def add_media(db: Session, actor: Actor, album_link: str, media_external_id: UUID) -> MediaOut:
    """Add a media item to an album. Adding an existing member is a no-op.

    The actor needs READ_WRITE on the album and must be able to see the media.
    """
    album, _ = load_visible_album(db, actor, album_link, Permission.READ_WRITE)
    media = load_media(db, media_external_id)
    require_media_permission(db, actor, media, Permission.READ)

    exists = db.scalar(
        select(AlbumMedia.id).where(
            AlbumMedia.album_id == album.id, AlbumMedia.media_id == media.id
        )
    )
    if exists is None:
        try:
            with transaction(db):
                db.add(AlbumMedia(album_id=album.id, media_id=media.id))
        except IntegrityError:
            # Concurrent add of the same pair; the pair exists either way
            pass
        else:
            logger.info("album_media_added", album_link=album.link, media_id=str(media.external_id))

    return media_out_for(db, media, actor)


def remove_media(db: Session, actor: Actor, album_link: str, media_external_id: UUID) -> None:
    """Remove a media item from an album (the media item itself is kept)."""
    with transaction(db):
        album, _ = load_visible_album(db, actor, album_link, Permission.READ_WRITE)
        media = load_media(db, media_external_id)
        result = db.execute(
            delete(AlbumMedia).where(
                AlbumMedia.album_id == album.id, AlbumMedia.media_id == media.id
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")

    logger.info("album_media_removed", album_link=album_link, media_id=str(media_external_id))


def list_album_media(
    db: Session, actor: Actor, album_link: str, now: datetime | None = None
) -> list[MediaOut]:
    """List the media of an album in the order they were added."""
    album, _ = load_visible_album(db, actor, album_link, Permission.READ, now=now)
    rows = db.execute(
        media_query()
        .join(AlbumMedia, AlbumMedia.media_id == Media.id)
        .where(AlbumMedia.album_id == album.id)
        .order_by(AlbumMedia.created_at, AlbumMedia.id)
    ).all()
    return [to_media_out(media, owner, folder_id, actor) for media, owner, folder_id in rows]


def set_thumbnail(
    db: Session, actor: Actor, album_link: str, media_external_id: UUID | None
) -> AlbumOut:
    """Set (or clear, with None) the album thumbnail.

    The media item must belong to the album's owner. It does not have to be a
    member of the album.

    Raises:
        NotFoundError: Album or media missing or invisible to the actor.
        InvalidRequestError: The media belongs to someone other than the album owner.
    """
    with transaction(db):
        album, permission = load_visible_album(db, actor, album_link, Permission.READ_WRITE)
        if media_external_id is None:
            album.thumbnail_link = None
        else:
            media = load_media(db, media_external_id)
            require_media_permission(db, actor, media, Permission.READ)
            if media.owner_id != album.owner_id:
                raise InvalidRequestError(
                    ApiErrorCode.E_OWNER_MISMATCH,
                    "Thumbnail must be a media item owned by the album owner",
                )
            album.thumbnail_link = media.external_id

    logger.info("album_thumbnail_set", album_link=album.link)
    return album_to_out(db, album, permission)


# =============================================================================
# Invites
# =============================================================================


def _invite_out(album: Album, invitee_external_id: UUID, invite: AlbumInvite) -> AlbumInviteOut:
    return AlbumInviteOut(
        album_link=album.link,
        album_name=album.name,
        user_id=invitee_external_id,
        accepted=invite.accepted,
        write_access=invite.write_access,
        created_at=invite.created_at,
    )


def invite_user(
    db: Session,
    actor: Actor,
    album_link: str,
    user_external_id: UUID,
    write_access: bool = False,
) -> AlbumInviteOut:
    """Invite a user into an album (owner only). The invite grants nothing until accepted.

    Raises:
        NotFoundError: Album or user missing.
        InvalidRequestError: Owner invited themselves.
        ConflictError: The user already has an invite to this album.
    """
    album = load_owned_album(db, actor, album_link)
    invitee = get_user_by_external_id(db, user_external_id)
    if invitee.id == album.owner_id:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Cannot invite the album owner")

    invite = AlbumInvite(
        album_id=album.id, invited_user_id=invitee.id, accepted=False, write_access=write_access
    )
    try:
        with transaction(db):
            db.add(invite)
    except IntegrityError:
        raise ConflictError(
            ApiErrorCode.E_INVITE_ALREADY_EXISTS, "User is already invited to this album"
        ) from None

    logger.info("album_invite_created", album_link=album.link, user_id=str(user_external_id))
    return _invite_out(album, invitee.external_id, invite)


def _load_own_invite(db: Session, actor: Actor, album_link: str) -> tuple[Album, AlbumInvite]:
    if actor.user_id is None:
        raise UnauthenticatedError()
    row = db.execute(
        select(Album, AlbumInvite)
        .join(AlbumInvite, AlbumInvite.album_id == Album.id)
        .where(Album.link == album_link, AlbumInvite.invited_user_id == actor.user_id)
    ).first()
    if row is None:
        raise NotFoundError(ApiErrorCode.E_INVITE_NOT_FOUND, "Invite not found")
    return row[0], row[1]


def accept_invite(db: Session, actor: Actor, album_link: str) -> AlbumInviteOut:
    """Accept the actor's invite to an album. Accepting twice is a no-op."""
    with transaction(db):
        album, invite = _load_own_invite(db, actor, album_link)
        invite.accepted = True

    logger.info("album_invite_accepted", album_link=album.link)
    return _invite_out(album, actor.user_external_id or _external_id(db, actor.user_id), invite)


def decline_invite(db: Session, actor: Actor, album_link: str) -> None:
    """Decline a pending invite, or leave an album whose invite was accepted."""
    with transaction(db):
        _, invite = _load_own_invite(db, actor, album_link)
        db.execute(delete(AlbumInvite).where(AlbumInvite.id == invite.id))

    logger.info("album_invite_declined", album_link=album_link)


def revoke_invite(db: Session, actor: Actor, album_link: str, user_external_id: UUID) -> None:
    """Withdraw a user's invite (owner only), whether pending or accepted."""
    with transaction(db):
        album = load_owned_album(db, actor, album_link)
        invitee = get_user_by_external_id(db, user_external_id)
        result = db.execute(
            delete(AlbumInvite).where(
                AlbumInvite.album_id == album.id, AlbumInvite.invited_user_id == invitee.id
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(ApiErrorCode.E_INVITE_NOT_FOUND, "Invite not found")

    logger.info("album_invite_revoked", album_link=album_link, user_id=str(user_external_id))


def list_pending_invites(db: Session, actor: Actor) -> list[AlbumInviteOut]:
    """List invites addressed to the actor that are not accepted yet."""
    if actor.user_id is None:
        raise UnauthenticatedError()
    invitee_external_id = actor.user_external_id or _external_id(db, actor.user_id)
    rows = db.execute(
        select(Album, AlbumInvite)
        .join(AlbumInvite, AlbumInvite.album_id == Album.id)
        .where(AlbumInvite.invited_user_id == actor.user_id, AlbumInvite.accepted.is_(False))
        .order_by(AlbumInvite.created_at, AlbumInvite.id)
    ).all()
    return [_invite_out(album, invitee_external_id, invite) for album, invite in rows]


def list_album_invites(db: Session, actor: Actor, album_link: str) -> list[AlbumInviteOut]:
    """List every invite of an album (owner only)."""
    album = load_owned_album(db, actor, album_link)
    rows = db.execute(
        select(AlbumInvite, User.external_id)
        .join(User, User.id == AlbumInvite.invited_user_id)
        .where(AlbumInvite.album_id == album.id)
        .order_by(AlbumInvite.created_at, AlbumInvite.id)
    ).all()
    return [_invite_out(album, external_id, invite) for invite, external_id in rows]


def _external_id(db: Session, user_id: int | None) -> UUID:
    return db.scalar(select(User.external_id).where(User.id == user_id))
