"""Upload pipeline.

Bytes go to the blob store (which returns the content hash), then to the
metadata extractor, then the result is recorded with ``insert_media``. The
core never keeps the bytes itself.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.auth.permissions import Permission
from galera.errors import ApiError, ApiErrorCode, InvalidRequestError, UnauthenticatedError
from galera.logging import get_logger
from galera.schemas.media import MediaOut
from galera.services.folders import load_owned_folder
from galera.services.media import insert_media
from galera.storage.blobs import BlobStore, StorageError
from galera.storage.metadata import MetadataExtractor

logger = get_logger(__name__)

MAX_UPLOAD_BYTES = 512 * 1024 * 1024


def upload_media(
    db: Session,
    blob_store: BlobStore,
    extractor: MetadataExtractor,
    actor: Actor,
    folder_external_id: UUID,
    filename: str,
    data: bytes,
) -> MediaOut:
    """Store uploaded bytes and index them in one of the actor's folders.

    The folder is checked before any bytes are written.

    Raises:
        UnauthenticatedError: Anonymous actor.
        NotFoundError: Folder missing or not the actor's.
        InvalidRequestError: Empty or oversized upload.
        ApiError: E_STORAGE_ERROR when the blob store fails.
    """
    if actor.user_id is None:
        raise UnauthenticatedError()

    load_owned_folder(db, actor, folder_external_id, Permission.READ_WRITE)

    if not data:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Upload is empty")
    if len(data) > MAX_UPLOAD_BYTES:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Upload is too large")

    try:
        hash_ = blob_store.store(data)
    except StorageError as e:
        logger.error("blob_store_failed", error_code=e.code, error=e.message)
        raise ApiError(ApiErrorCode.E_STORAGE_ERROR, "Could not store upload") from e

    metadata = extractor.extract(data, filename)
    return insert_media(db, actor.user_id, folder_external_id, hash_, metadata, filename)
