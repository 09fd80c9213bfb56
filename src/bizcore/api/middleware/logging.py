"""Request logging middleware."""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from bizcore.core.logging import get_logger, log_request_end

logger = get_logger("bizcore.api.requests")

# Probes are too frequent to log
SKIP_LOGGING_PATHS = {"/health", "/health/db", "/metrics"}

_INVITATION_TOKEN_PATH = re.compile(r"^(/v1/invitations/)([^/]+)(.*)$")


def mask_invitation_token(path: str) -> str:
    """Hide the token in ``/v1/invitations/{token}[...]``; it grants acceptance."""
    match = _INVITATION_TOKEN_PATH.match(path)
    if match is None:
        return path
    return f"{match.group(1)}{{token}}{match.group(3)}"


def client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request once, when the response is ready.

    Domain events (invitation issued, member removed, ...) are written to the
    audit table by the services; this only records the HTTP exchange.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in SKIP_LOGGING_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)

        request_id = getattr(request.state, "request_id", None)
        actor_id = getattr(request.state, "actor_id", None)
        log_request_end(
            logger,
            method=request.method,
            path=mask_invitation_token(request.url.path),
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - started) * 1000,
            request_id=str(request_id) if request_id else None,
            user_id=str(actor_id) if actor_id else None,
            client_ip=client_ip(request),
        )
        return response
