"""Folder routes.

Routes are transport-only:
- Extract the actor from request.state
- Call exactly one service function
- Return success(...) or raise ApiError

IMPORTANT: /folders/root must be registered BEFORE /folders/{folder_id}.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from galera.api.deps import get_db
from galera.auth.context import Actor
from galera.auth.middleware import get_actor
from galera.errors import ApiErrorCode, InvalidRequestError
from galera.responses import success_response
from galera.schemas.folders import CreateFolderRequest, UpdateFolderRequest
from galera.services import folders as folders_service

router = APIRouter()


@router.get("/folders/root")
def get_root_folder(
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get (creating on first use) the caller's root folder."""
    result = folders_service.get_root_folder(db, actor)
    return success_response(result.model_dump(mode="json"))


@router.post("/folders", status_code=201)
def create_folder(
    body: CreateFolderRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a folder. Without ``parent_id`` it is created under the root."""
    result = folders_service.create_folder(db, actor, body.name, body.parent_id)
    return success_response(result.model_dump(mode="json"))


@router.get("/folders/{folder_id}")
def get_folder(
    folder_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = folders_service.get_folder(db, actor, folder_id)
    return success_response(result.model_dump(mode="json"))


@router.get("/folders/{folder_id}/children")
def list_child_folders(
    folder_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = folders_service.list_child_folders(db, actor, folder_id)
    return success_response([folder.model_dump(mode="json") for folder in result])


@router.patch("/folders/{folder_id}")
def rename_folder(
    folder_id: UUID,
    body: UpdateFolderRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Rename a folder."""
    if body.name is None:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "name is required")
    result = folders_service.rename_folder(db, actor, folder_id, body.name)
    return success_response(result.model_dump(mode="json"))


@router.post("/folders/{folder_id}/move")
def reparent_folder(
    folder_id: UUID,
    body: UpdateFolderRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Move a folder under a new parent. Moves into its own subtree are rejected (409)."""
    if body.parent_id is None:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "parent_id is required")
    result = folders_service.reparent_folder(db, actor, folder_id, body.parent_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/folders/{folder_id}", status_code=204)
def delete_folder(
    folder_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a folder with its subfolders and media."""
    folders_service.delete_folder(db, actor, folder_id)
    return Response(status_code=204)
