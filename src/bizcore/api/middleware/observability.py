"""Observability middleware for HTTP metrics."""

import re
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from bizcore.api.middleware.logging import mask_invitation_token
from bizcore.observability.metrics import record_http_request

_UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Middleware that records Prometheus metrics for HTTP requests.

    Uses the matched route template as the endpoint label, so slugs, ids and
    invitation tokens never become label values.
    """

    # Paths to exclude from metrics
    EXCLUDED_PATHS = {"/health", "/health/db", "/metrics"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with metrics instrumentation."""
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        method = request.method
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            record_http_request(
                method=method,
                endpoint=self._endpoint_label(request),
                status_code=500,
                duration_seconds=time.perf_counter() - start_time,
            )
            raise

        record_http_request(
            method=method,
            endpoint=self._endpoint_label(request),
            status_code=response.status_code,
            duration_seconds=time.perf_counter() - start_time,
        )
        return response

    def _endpoint_label(self, request: Request) -> str:
        """Route template if one matched, else the path with tokens and UUIDs replaced."""
        route = request.scope.get("route")
        template = getattr(route, "path", None)
        if template:
            return template
        return _UUID_PATTERN.sub("{id}", mask_invitation_token(request.url.path))
