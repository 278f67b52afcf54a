"""Media service layer (content index entries and favorites).

A media item always lives in a folder of its own owner. Byte content is
deduplicated per owner: identical content hashes resolve to one
``MediaContent`` row, and placing the same content into the same folder
twice returns the existing media item.

Visibility follows the access resolver: owners see and mutate their media;
anyone holding READ on an album containing the media may view it.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.auth.permissions import (
    Permission,
    require_media_permission,
    resolve_media_permission,
)
from galera.db.models import FavoriteMedia, Folder, Media, MediaContent, User
from galera.db.session import transaction
from galera.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from galera.logging import get_logger
from galera.schemas.media import FavoriteOut, MediaOut
from galera.services.folders import load_folder, load_owned_folder
from galera.storage.metadata import MediaMetadata

logger = get_logger(__name__)

MAX_FILENAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 4000
INSERT_ATTEMPTS = 2


def _validate_filename(filename: str) -> str:
    filename = filename.strip()
    if not filename or len(filename) > MAX_FILENAME_LENGTH or "/" in filename:
        raise InvalidRequestError(
            ApiErrorCode.E_NAME_INVALID,
            f"Filename must be 1-{MAX_FILENAME_LENGTH} characters without '/'",
        )
    return filename


def _require_user(actor: Actor) -> int:
    if actor.user_id is None:
        raise UnauthenticatedError()
    return actor.user_id


def media_query():
    """Media rows joined with the owner and folder external ids."""
    return (
        select(Media, User.external_id, Folder.external_id)
        .join(User, User.id == Media.owner_id)
        .join(Folder, Folder.id == Media.folder_id)
    )


def to_media_out(
    media: Media, owner_external_id: UUID, folder_external_id: UUID, actor: Actor
) -> MediaOut:
    """Build the outward view. The folder is only shown to the owner."""
    is_owner = actor.user_id is not None and actor.user_id == media.owner_id
    return MediaOut(
        id=media.external_id,
        filename=media.filename,
        folder_id=folder_external_id if is_owner else None,
        owner_id=owner_external_id,
        content_hash=media.content_hash,
        width=media.width,
        height=media.height,
        taken_at=media.taken_at,
        description=media.description,
        created_at=media.created_at,
    )


def media_out_for(db: Session, media: Media, actor: Actor) -> MediaOut:
    row = db.execute(media_query().where(Media.id == media.id)).one()
    return to_media_out(row[0], row[1], row[2], actor)


def load_media(db: Session, media_external_id: UUID) -> Media:
    """Load a media row by external id or raise NotFoundError."""
    media = db.scalar(select(Media).where(Media.external_id == media_external_id))
    if media is None:
        raise NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")
    return media


def load_visible_media(
    db: Session,
    actor: Actor,
    media_external_id: UUID,
    required: Permission,
    now: datetime | None = None,
) -> Media:
    """Load a media row and enforce the actor's access (masked 404 when invisible)."""
    media = load_media(db, media_external_id)
    require_media_permission(db, actor, media, required, now=now)
    return media


# =============================================================================
# Insertion
# =============================================================================


def _insert_once(
    db: Session,
    owner_id: int,
    folder: Folder,
    content_hash: str,
    metadata: MediaMetadata,
    filename: str,
) -> tuple[Media, bool]:
    with transaction(db):
        content = db.scalar(
            select(MediaContent).where(
                MediaContent.owner_id == owner_id,
                MediaContent.content_hash == content_hash,
            )
        )
        if content is None:
            content = MediaContent(owner_id=owner_id, content_hash=content_hash)
            db.add(content)
            db.flush()

        existing = db.scalar(
            select(Media).where(Media.folder_id == folder.id, Media.content_id == content.id)
        )
        if existing is not None:
            return existing, False

        media = Media(
            filename=filename,
            owner_id=owner_id,
            folder_id=folder.id,
            content_id=content.id,
            content_hash=content_hash,
            width=metadata.width,
            height=metadata.height,
            taken_at=metadata.taken_at,
        )
        db.add(media)
    return media, True


def insert_media(
    db: Session,
    owner_id: int,
    folder_external_id: UUID,
    content_hash: str,
    metadata: MediaMetadata,
    filename: str,
) -> MediaOut:
    """Record a media item for bytes already handed to the blob store.

    Identical (owner, content_hash) pairs share one content record; identical
    (folder, content) pairs return the existing media item unchanged.

    Raises:
        NotFoundError: The folder does not exist or belongs to someone else.
        InvalidRequestError: Filename or content hash is malformed.
    """
    filename = _validate_filename(filename)
    if not content_hash:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Content hash is required")

    folder = load_folder(db, folder_external_id)
    if folder.owner_id != owner_id:
        raise NotFoundError(ApiErrorCode.E_FOLDER_NOT_FOUND, "Folder not found")

    # A concurrent insert of the same content loses on a unique constraint;
    # the retry then finds the winner's rows.
    for attempt in range(INSERT_ATTEMPTS):
        try:
            media, created = _insert_once(db, owner_id, folder, content_hash, metadata, filename)
            break
        except IntegrityError:
            if attempt + 1 == INSERT_ATTEMPTS:
                raise

    if created:
        logger.info("media_inserted", media_id=str(media.external_id))
    else:
        logger.info("media_deduplicated", media_id=str(media.external_id))
    return media_out_for(db, media, Actor(user_id=owner_id))


# =============================================================================
# Read / update / delete
# =============================================================================


def get_media(db: Session, actor: Actor, media_external_id: UUID) -> MediaOut:
    media = load_visible_media(db, actor, media_external_id, Permission.READ)
    return media_out_for(db, media, actor)


def list_folder_media(db: Session, actor: Actor, folder_external_id: UUID) -> list[MediaOut]:
    """List the media placed directly in a folder, oldest first."""
    folder = load_owned_folder(db, actor, folder_external_id, Permission.READ)
    rows = db.execute(
        media_query().where(Media.folder_id == folder.id).order_by(Media.created_at, Media.id)
    ).all()
    return [to_media_out(media, owner, folder_id, actor) for media, owner, folder_id in rows]


def rename_media(db: Session, actor: Actor, media_external_id: UUID, filename: str) -> MediaOut:
    filename = _validate_filename(filename)
    with transaction(db):
        media = load_visible_media(db, actor, media_external_id, Permission.READ_WRITE)
        media.filename = filename
    return media_out_for(db, media, actor)


def move_media(
    db: Session, actor: Actor, media_external_id: UUID, folder_external_id: UUID
) -> MediaOut:
    """Move a media item into another folder of the same owner.

    Raises:
        NotFoundError: Media or folder is missing or not visible.
        InvalidRequestError: The folder belongs to a different owner.
        ConflictError: The target folder already holds the same content.
    """
    with transaction(db):
        media = load_visible_media(db, actor, media_external_id, Permission.READ_WRITE)
        folder = load_owned_folder(db, actor, folder_external_id, Permission.READ_WRITE)
        if folder.owner_id != media.owner_id:
            raise InvalidRequestError(
                ApiErrorCode.E_OWNER_MISMATCH, "Media can only move between its owner's folders"
            )
        if folder.id != media.folder_id:
            clash = db.scalar(
                select(Media.id).where(
                    Media.folder_id == folder.id, Media.content_id == media.content_id
                )
            )
            if clash is not None:
                raise ConflictError(
                    ApiErrorCode.E_CONFLICT, "The folder already contains this content"
                )
            media.folder_id = folder.id

    logger.info("media_moved", media_id=str(media.external_id), folder_id=str(folder.external_id))
    return media_out_for(db, media, actor)


def set_media_description(
    db: Session, actor: Actor, media_external_id: UUID, description: str
) -> MediaOut:
    """Set a media item's description. A blank description clears it."""
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
        )
    if not description:
        return clear_media_description(db, actor, media_external_id)

    with transaction(db):
        media = load_visible_media(db, actor, media_external_id, Permission.READ_WRITE)
        media.description = description

    logger.info("media_description_updated", media_id=str(media.external_id))
    return media_out_for(db, media, actor)


def clear_media_description(db: Session, actor: Actor, media_external_id: UUID) -> MediaOut:
    with transaction(db):
        media = load_visible_media(db, actor, media_external_id, Permission.READ_WRITE)
        media.description = None

    logger.info("media_description_cleared", media_id=str(media.external_id))
    return media_out_for(db, media, actor)


def delete_media(db: Session, actor: Actor, media_external_id: UUID) -> None:
    """Delete a media item. Album memberships and favorites cascade; thumbnails are cleared."""
    with transaction(db):
        media = load_visible_media(db, actor, media_external_id, Permission.READ_WRITE)
        db.execute(delete(Media).where(Media.id == media.id))
    db.expire_all()

    logger.info("media_deleted", media_id=str(media_external_id))


# =============================================================================
# Favorites
# =============================================================================


def add_favorite(db: Session, actor: Actor, media_external_id: UUID) -> FavoriteOut:
    """Favorite a visible media item. Idempotent."""
    user_id = _require_user(actor)
    media = load_visible_media(db, actor, media_external_id, Permission.READ)

    favorite = db.scalar(
        select(FavoriteMedia).where(
            FavoriteMedia.media_id == media.id, FavoriteMedia.user_id == user_id
        )
    )
    if favorite is None:
        favorite = FavoriteMedia(media_id=media.id, user_id=user_id)
        try:
            with transaction(db):
                db.add(favorite)
        except IntegrityError:
            favorite = db.scalar(
                select(FavoriteMedia).where(
                    FavoriteMedia.media_id == media.id, FavoriteMedia.user_id == user_id
                )
            )
            if favorite is None:
                raise

    return FavoriteOut(media_id=media.external_id, created_at=favorite.created_at)


def remove_favorite(db: Session, actor: Actor, media_external_id: UUID) -> None:
    """Remove a favorite. Missing favorites are a masked 404."""
    user_id = _require_user(actor)
    media = load_media(db, media_external_id)
    with transaction(db):
        result = db.execute(
            delete(FavoriteMedia).where(
                FavoriteMedia.media_id == media.id, FavoriteMedia.user_id == user_id
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")


def list_favorites(db: Session, actor: Actor) -> list[MediaOut]:
    """List the actor's favorites that are still visible to them, newest first."""
    user_id = _require_user(actor)
    rows = db.execute(
        media_query()
        .join(FavoriteMedia, FavoriteMedia.media_id == Media.id)
        .where(FavoriteMedia.user_id == user_id)
        .order_by(FavoriteMedia.created_at.desc(), FavoriteMedia.id.desc())
    ).all()
    return [
        to_media_out(media, owner, folder_id, actor)
        for media, owner, folder_id in rows
        if resolve_media_permission(db, actor, media) >= Permission.READ
    ]
