"""Share-link routes.

``GET /shared/album`` is the anonymous entry point: the caller presents the
share slug and password through HTTP Basic auth and gets the album back.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from galera.api.deps import get_db
from galera.auth.context import Actor
from galera.auth.middleware import get_actor, get_optional_actor
from galera.errors import UnauthenticatedError
from galera.responses import success_response
from galera.schemas.albums import UpdateShareLinkRequest
from galera.services import share_links as share_links_service

router = APIRouter()


@router.get("/shared/album")
def open_share_link(
    actor: Annotated[Actor, Depends(get_optional_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Resolve the presented share-link credential to its album."""
    if actor.share is None:
        raise UnauthenticatedError()
    result = share_links_service.open_share_link(db, actor.share.slug, actor.share.password)
    return success_response(result.model_dump(mode="json"))


@router.patch("/share-links/{share_link_id}")
def update_share_link(
    share_link_id: str,
    body: UpdateShareLinkRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Change a share link's password or expiration (album owner only)."""
    result = share_links_service.update_share_link(
        db,
        actor,
        share_link_id,
        password=body.password,
        expires_at=body.expires_at,
        clear_expiration=body.clear_expiration,
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/share-links/{share_link_id}", status_code=204)
def delete_share_link(
    share_link_id: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    share_links_service.delete_share_link(db, actor, share_link_id)
    return Response(status_code=204)
