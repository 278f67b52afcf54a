"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from galera.api.routes.albums import router as albums_router
from galera.api.routes.auth import router as auth_router
from galera.api.routes.folders import router as folders_router
from galera.api.routes.health import router as health_router
from galera.api.routes.me import router as me_router
from galera.api.routes.media import router as media_router
from galera.api.routes.share_links import router as share_links_router


def create_api_router() -> APIRouter:
    """Create and configure the API router with all routes registered."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(auth_router, tags=["auth"])
    api_router.include_router(me_router, tags=["user"])
    api_router.include_router(folders_router, tags=["folders"])
    api_router.include_router(media_router, tags=["media"])
    api_router.include_router(albums_router, tags=["albums"])
    api_router.include_router(share_links_router, tags=["share-links"])
    return api_router


__all__ = ["create_api_router"]
