"""Media, upload and favorite routes.

Routes are transport-only: extract the actor, call one service function,
wrap the result. Media readable through an album also accepts an anonymous
share-link credential (HTTP Basic).
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.orm import Session

from galera.api.deps import get_blob_store, get_db, get_metadata_extractor
from galera.auth.context import Actor
from galera.auth.middleware import get_actor, get_optional_actor
from galera.errors import ApiErrorCode, InvalidRequestError
from galera.responses import success_response
from galera.schemas.media import MediaDescriptionRequest, UpdateMediaRequest
from galera.services import media as media_service
from galera.services import upload as upload_service
from galera.storage.blobs import BlobStore
from galera.storage.metadata import MetadataExtractor

router = APIRouter()


@router.post("/folders/{folder_id}/media", status_code=201)
def upload_media(
    folder_id: UUID,
    filename: Annotated[str, Query(min_length=1, max_length=255)],
    data: Annotated[bytes, Body(media_type="application/octet-stream")],
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    extractor: Annotated[MetadataExtractor, Depends(get_metadata_extractor)],
) -> dict:
    """Upload raw bytes (request body) into a folder.

    Uploading identical bytes into the same folder returns the existing item.
    """
    result = upload_service.upload_media(
        db, blob_store, extractor, actor, folder_id, filename, data
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/folders/{folder_id}/media")
def list_folder_media(
    folder_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = media_service.list_folder_media(db, actor, folder_id)
    return success_response([media.model_dump(mode="json") for media in result])


@router.get("/media/{media_id}")
def get_media(
    media_id: UUID,
    actor: Annotated[Actor, Depends(get_optional_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get a media item. Missing and invisible media both return 404."""
    result = media_service.get_media(db, actor, media_id)
    return success_response(result.model_dump(mode="json"))


@router.patch("/media/{media_id}")
def rename_media(
    media_id: UUID,
    body: UpdateMediaRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    if body.filename is None:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "filename is required")
    result = media_service.rename_media(db, actor, media_id, body.filename)
    return success_response(result.model_dump(mode="json"))


@router.post("/media/{media_id}/move")
def move_media(
    media_id: UUID,
    body: UpdateMediaRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Move a media item into another of the owner's folders."""
    if body.folder_id is None:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "folder_id is required")
    result = media_service.move_media(db, actor, media_id, body.folder_id)
    return success_response(result.model_dump(mode="json"))


@router.put("/media/{media_id}/description")
def set_media_description(
    media_id: UUID,
    body: MediaDescriptionRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Set a media description. An empty description clears it."""
    result = media_service.set_media_description(db, actor, media_id, body.description)
    return success_response(result.model_dump(mode="json"))


@router.delete("/media/{media_id}/description")
def clear_media_description(
    media_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = media_service.clear_media_description(db, actor, media_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/media/{media_id}", status_code=204)
def delete_media(
    media_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    media_service.delete_media(db, actor, media_id)
    return Response(status_code=204)


# ---- Favorites ----


@router.get("/favorites")
def list_favorites(
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = media_service.list_favorites(db, actor)
    return success_response([media.model_dump(mode="json") for media in result])


@router.put("/favorites/{media_id}")
def add_favorite(
    media_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Favorite a media item. Idempotent."""
    result = media_service.add_favorite(db, actor, media_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/favorites/{media_id}", status_code=204)
def remove_favorite(
    media_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    media_service.remove_favorite(db, actor, media_id)
    return Response(status_code=204)
