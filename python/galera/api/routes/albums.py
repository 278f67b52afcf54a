"""Album routes.

Routes are transport-only:
- Extract the actor from request.state
- Call exactly one service function
- Return success(...) or raise ApiError

Read routes accept anonymous callers presenting a share-link credential
(HTTP Basic ``slug:password``). Missing and invisible albums are both 404.

IMPORTANT: Static routes (/albums/invites) must be registered BEFORE
dynamic routes (/albums/{album_link}).
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from galera.api.deps import get_db
from galera.auth.context import Actor
from galera.auth.middleware import get_actor, get_optional_actor
from galera.responses import success_response
from galera.schemas.albums import (
    AlbumMediaRequest,
    CreateAlbumRequest,
    CreateInviteRequest,
    CreateShareLinkRequest,
    UpdateAlbumRequest,
)
from galera.services import albums as albums_service
from galera.services import share_links as share_links_service

router = APIRouter()


# =============================================================================
# Static invite routes (MUST be before /albums/{album_link} routes)
# =============================================================================


@router.get("/albums/invites")
def list_pending_invites(
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List album invites addressed to the caller that are still pending."""
    result = albums_service.list_pending_invites(db, actor)
    return success_response([invite.model_dump(mode="json") for invite in result])


# =============================================================================
# Standard album routes
# =============================================================================


@router.get("/albums")
def list_albums(
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List albums the caller owns or joined through an accepted invite."""
    result = albums_service.list_albums(db, actor)
    return success_response([album.model_dump(mode="json") for album in result])


@router.post("/albums", status_code=201)
def create_album(
    body: CreateAlbumRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = albums_service.create_album(
        db, actor, body.name, description=body.description, password=body.password
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/albums/{album_link}")
def get_album(
    album_link: str,
    actor: Annotated[Actor, Depends(get_optional_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = albums_service.get_album(db, actor, album_link)
    return success_response(result.model_dump(mode="json"))


@router.patch("/albums/{album_link}")
def update_album(
    album_link: str,
    body: UpdateAlbumRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update name/description (read-write access) or password (owner only)."""
    result = albums_service.update_album(
        db,
        actor,
        album_link,
        name=body.name,
        description=body.description,
        password=body.password,
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/albums/{album_link}", status_code=204)
def delete_album(
    album_link: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete an album (owner only). Memberships, invites and share links go with it."""
    albums_service.delete_album(db, actor, album_link)
    return Response(status_code=204)


# ---- Album media ----


@router.get("/albums/{album_link}/media")
def list_album_media(
    album_link: str,
    actor: Annotated[Actor, Depends(get_optional_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = albums_service.list_album_media(db, actor, album_link)
    return success_response([media.model_dump(mode="json") for media in result])


@router.post("/albums/{album_link}/media", status_code=201)
def add_album_media(
    album_link: str,
    body: AlbumMediaRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Add a media item to an album. Idempotent."""
    result = albums_service.add_media(db, actor, album_link, body.media_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/albums/{album_link}/media/{media_id}", status_code=204)
def remove_album_media(
    album_link: str,
    media_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    albums_service.remove_media(db, actor, album_link, media_id)
    return Response(status_code=204)


@router.put("/albums/{album_link}/thumbnail")
def set_album_thumbnail(
    album_link: str,
    body: AlbumMediaRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Set the thumbnail to a media item owned by the album owner."""
    result = albums_service.set_thumbnail(db, actor, album_link, body.media_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/albums/{album_link}/thumbnail")
def clear_album_thumbnail(
    album_link: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = albums_service.set_thumbnail(db, actor, album_link, None)
    return success_response(result.model_dump(mode="json"))


# ---- Album-scoped invites ----


@router.get("/albums/{album_link}/invites")
def list_album_invites(
    album_link: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = albums_service.list_album_invites(db, actor, album_link)
    return success_response([invite.model_dump(mode="json") for invite in result])


@router.post("/albums/{album_link}/invites", status_code=201)
def invite_user(
    album_link: str,
    body: CreateInviteRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Invite a user (owner only). The invite grants nothing until accepted."""
    result = albums_service.invite_user(
        db, actor, album_link, body.user_id, write_access=body.write_access
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/albums/{album_link}/invites/accept")
def accept_invite(
    album_link: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = albums_service.accept_invite(db, actor, album_link)
    return success_response(result.model_dump(mode="json"))


@router.post("/albums/{album_link}/invites/decline", status_code=204)
def decline_invite(
    album_link: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Decline a pending invite, or leave the album."""
    albums_service.decline_invite(db, actor, album_link)
    return Response(status_code=204)


@router.delete("/albums/{album_link}/invites/{user_id}", status_code=204)
def revoke_invite(
    album_link: str,
    user_id: UUID,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    albums_service.revoke_invite(db, actor, album_link, user_id)
    return Response(status_code=204)


# ---- Album-scoped share links ----


@router.get("/albums/{album_link}/share-links")
def list_share_links(
    album_link: str,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = share_links_service.list_share_links(db, actor, album_link)
    return success_response([link.model_dump(mode="json") for link in result])


@router.post("/albums/{album_link}/share-links", status_code=201)
def create_share_link(
    album_link: str,
    body: CreateShareLinkRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a share link (owner only), optionally with a password and expiration."""
    result = share_links_service.create_share_link(
        db, actor, album_link, password=body.password, expires_at=body.expires_at
    )
    return success_response(result.model_dump(mode="json"))
