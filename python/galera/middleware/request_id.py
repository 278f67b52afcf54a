"""X-Request-ID middleware for request correlation and access logging.

Added last so it runs first: every other middleware (including auth, whose
rejections are plain JSON responses) is wrapped and sees the request id.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from galera.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Alphanumerics plus dots, hyphens and underscores; UUIDs match as well
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Return a usable request id, reusing the caller's one when it is well formed.

    Incoming UUIDs are lowercased so the same id always logs identically.
    Anything missing, oversized or containing other characters is replaced by
    a fresh UUID4.
    """
    if incoming and len(incoming.encode("utf-8")) <= MAX_REQUEST_ID_LENGTH:
        if VALID_REQUEST_ID_PATTERN.match(incoming):
            try:
                return str(uuid.UUID(incoming)) if len(incoming) == 36 else incoming
            except ValueError:
                return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to state, logging context and the response header.

    Emits one ``request_completed`` entry per request once the response is
    produced (including the authenticated actor when there is one).
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)

            actor = getattr(request.state, "actor", None)
            if actor is not None and actor.user_id is not None:
                user_id = str(actor.user_external_id or actor.user_id)
                set_request_context(request_id, user_id=user_id)

            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - started) * 1000, 2),
                )

            return response

        except Exception:
            # unhandled_exception_handler renders the response
            logger.exception("request_failed")
            raise

        finally:
            clear_request_context()


def get_request_id_from_request(request: Request) -> str | None:
    """Get the request ID from request state."""
    return getattr(request.state, "request_id", None)
