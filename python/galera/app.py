"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, request-id middleware, and routes.

Collaborators live on ``app.state`` so tests can swap them:
- session_factory: SQLAlchemy sessionmaker
- blob_store: where uploaded bytes go
- metadata_extractor: width/height/taken_at from uploaded bytes

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all requests (including auth failures) get X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. AuthMiddleware (validates the bearer token or share credential, sets actor)
3. Route handler
4. AuthMiddleware (returns response)
5. RequestIDMiddleware (logs, sets response header)
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session, sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from galera.api.routes import create_api_router
from galera.auth.context import Actor
from galera.auth.middleware import AuthMiddleware, TokenValidator
from galera.config import get_settings
from galera.db.session import get_session_factory
from galera.errors import ApiError
from galera.logging import configure_logging, get_logger
from galera.middleware.request_id import RequestIDMiddleware
from galera.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from galera.services.tokens import validate_access_token
from galera.storage.blobs import BlobStore, get_blob_store
from galera.storage.metadata import MetadataExtractor, NullMetadataExtractor

logger = get_logger(__name__)


def create_token_validator(session_factory: sessionmaker[Session]) -> TokenValidator:
    """Create the bearer-token validator used by the auth middleware.

    The validator opens its own database session per call and closes it.
    """

    def validate(access_token: str) -> Actor:
        db = session_factory()
        try:
            user = validate_access_token(db, access_token)
            return Actor(user_id=user.id, user_external_id=user.external_id)
        finally:
            db.close()

    return validate


def create_app(
    session_factory: sessionmaker[Session] | None = None,
    blob_store: BlobStore | None = None,
    metadata_extractor: MetadataExtractor | None = None,
    skip_auth_middleware: bool = False,
    token_validator: TokenValidator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_factory: Session factory; defaults to one bound to DATABASE_URL.
        blob_store: Blob store; defaults to a local store under BLOB_STORE_PATH.
        metadata_extractor: Metadata extractor; defaults to one that extracts nothing.
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_validator: Optional custom token validator (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Galera API",
        description="Backend API for Galera - a personal media library",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.session_factory = (
        session_factory if session_factory is not None else get_session_factory()
    )
    app.state.blob_store = blob_store if blob_store is not None else get_blob_store()
    app.state.metadata_extractor = (
        metadata_extractor if metadata_extractor is not None else NullMetadataExtractor()
    )

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include API routes (must be before middleware for correct ordering)
    app.include_router(create_api_router())

    if not skip_auth_middleware:
        validator = token_validator or create_token_validator(app.state.session_factory)
        app.add_middleware(AuthMiddleware, token_validator=validator)
        logger.info("auth_middleware_enabled", env=settings.galera_env.value)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
