"""Credential routes: registration, login, token refresh and logout.

These routes are reachable without a bearer token. Login failures are
reported as a single E_INVALID_CREDENTIALS so callers cannot discover which
usernames exist.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from galera.api.deps import get_db
from galera.errors import ApiErrorCode, InvalidCredentialError, NotFoundError
from galera.responses import success_response
from galera.schemas.auth import LoginRequest, RefreshTokenRequest, RegisterRequest
from galera.services import identity as identity_service
from galera.services import tokens as tokens_service

router = APIRouter()


@router.post("/auth/register", status_code=201)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a password account."""
    result = identity_service.register_user(db, body.username, body.email, body.password)
    return success_response(result.model_dump(mode="json"))


@router.post("/auth/login")
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Exchange a username-or-email and password for a refresh + access token pair."""
    try:
        result = tokens_service.login(db, body.login, body.password)
    except NotFoundError:
        raise InvalidCredentialError() from None
    except InvalidCredentialError as e:
        if e.code == ApiErrorCode.E_WRONG_PASSWORD:
            raise InvalidCredentialError() from None
        raise
    return success_response(result.model_dump(mode="json"))


@router.post("/auth/refresh")
def rotate_refresh_token(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Rotate a refresh token: the old one is revoked and a new pair is issued."""
    result = tokens_service.rotate_refresh_token(db, body.refresh_token)
    return success_response(result.model_dump(mode="json"))


@router.post("/auth/access-token")
def issue_access_token(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Mint a short-lived access token from a refresh token."""
    result = tokens_service.issue_access_token(db, body.refresh_token)
    return success_response(result.model_dump(mode="json"))


@router.post("/auth/logout", status_code=204)
def logout(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Revoke a refresh token and every access token minted from it.

    Unknown tokens are accepted silently.
    """
    tokens_service.revoke_refresh_token(db, body.refresh_token)
    return Response(status_code=204)
