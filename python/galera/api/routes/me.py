"""Current user endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from galera.api.deps import get_db
from galera.auth.context import Actor
from galera.auth.middleware import get_actor
from galera.responses import success_response
from galera.schemas.auth import SetPasswordRequest
from galera.services import identity as identity_service

router = APIRouter()


@router.get("/me")
def get_me(
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the authenticated user's account."""
    result = identity_service.get_user_out(db, actor)
    return success_response(result.model_dump(mode="json"))


@router.put("/me/password")
def set_password(
    body: SetPasswordRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Set or replace the caller's password."""
    result = identity_service.set_password(db, actor, body.password)
    return success_response(result.model_dump(mode="json"))


@router.delete("/me", status_code=204)
def delete_me(
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete the caller's account and everything it owns."""
    identity_service.delete_user(db, actor.user_external_id)
    return Response(status_code=204)
