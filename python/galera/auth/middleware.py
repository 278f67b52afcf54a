"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: turns the Authorization header into an Actor on request.state
- get_actor / get_optional_actor: dependencies for route handlers

Accepted Authorization schemes:
- ``Bearer <access token>``: validated through the configured token validator
- ``Basic base64(share_slug:password)``: anonymous share-link credential
- no header: anonymous actor (routes decide whether that is enough)
"""

import base64
import binascii
from collections.abc import Callable

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from galera.auth.context import Actor, ShareCredential
from galera.errors import ApiError, ApiErrorCode, UnauthenticatedError
from galera.logging import get_logger
from galera.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"

# Paths that never look at credentials
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

TokenValidator = Callable[[str], Actor]


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate the caller and attach an ``Actor`` to ``request.state.actor``.

    Invalid, expired or revoked bearer tokens are rejected here with 401. A
    request without credentials proceeds as anonymous.
    """

    def __init__(self, app: ASGIApp, token_validator: TokenValidator):
        """Initialize the auth middleware.

        Args:
            app: The ASGI application.
            token_validator: Function(access_token) -> Actor. Raises ApiError
                when the token is not usable. Runs in the threadpool.
        """
        super().__init__(app)
        self.token_validator = token_validator

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        auth_header = request.headers.get(AUTHORIZATION_HEADER)
        if not auth_header:
            request.state.actor = Actor.anonymous()
            return await call_next(request)

        scheme, _, credentials = auth_header.partition(" ")
        scheme = scheme.lower()
        credentials = credentials.strip()

        if scheme == "bearer" and credentials:
            try:
                actor = await run_in_threadpool(self.token_validator, credentials)
            except ApiError as e:
                logger.warning("auth_failure", reason=e.code.value)
                return self._error_json_response(e.code, e.message, e.status_code)
            request.state.actor = actor
            return await call_next(request)

        if scheme == "basic" and credentials:
            share = self._parse_share_credential(credentials)
            if share is None:
                logger.warning("auth_failure", reason="invalid_basic_credentials")
                return self._error_json_response(
                    ApiErrorCode.E_UNAUTHENTICATED, "Invalid authorization header format", 401
                )
            request.state.actor = Actor.anonymous(share=share)
            return await call_next(request)

        logger.warning("auth_failure", reason="invalid_header_format")
        return self._error_json_response(
            ApiErrorCode.E_UNAUTHENTICATED, "Invalid authorization header format", 401
        )

    @staticmethod
    def _parse_share_credential(credentials: str) -> ShareCredential | None:
        try:
            decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        slug, separator, password = decoded.partition(":")
        if not separator or not slug:
            return None
        return ShareCredential(slug=slug, password=password or None)

    def _error_json_response(
        self, code: ApiErrorCode, message: str, status_code: int
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=error_response(code, message),
        )


def get_optional_actor(request: Request) -> Actor:
    """FastAPI dependency for routes that also serve anonymous share-link callers."""
    actor = getattr(request.state, "actor", None)
    if actor is None:
        return Actor.anonymous()
    return actor


def get_actor(request: Request) -> Actor:
    """FastAPI dependency for routes that require an authenticated user.

    Raises:
        UnauthenticatedError: If the request carries no bearer token.
    """
    actor = get_optional_actor(request)
    if actor.user_id is None:
        raise UnauthenticatedError()
    return actor


# Type aliases for dependency injection
ActorDep = Depends(get_actor)
OptionalActorDep = Depends(get_optional_actor)
