"""Liveness route for the Galera API.

``/health`` is a public path: it skips authentication and never opens a
database session, so it stays green while the store is unreachable.
"""

from fastapi import APIRouter, Request

from galera.responses import success_response

router = APIRouter()

SERVICE_NAME = "galera"


@router.get("/health")
async def health_check(request: Request) -> dict:
    return success_response(
        {"status": "ok", "service": SERVICE_NAME, "version": request.app.version}
    )
