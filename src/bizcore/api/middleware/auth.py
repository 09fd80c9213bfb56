"""Authentication middleware for Bearer session tokens."""

import re
from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from bizcore.api.schemas.errors import ErrorCode, error_response
from bizcore.config.settings import get_settings
from bizcore.core.context import ActorType
from bizcore.core.logging import get_logger
from bizcore.identity.provider import DatabaseIdentityProvider

logger = get_logger(__name__)

# Paths that don't require authentication
SKIP_AUTH_PATHS = {
    "/health",
    "/health/db",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
}

# Invitation preview, accept and resume are reached from an emailed link;
# the invitation token is the credential
PUBLIC_PATH_PATTERN = re.compile(r"^/v1/invitations/[^/]+(/accept|/resume)?/?$")

BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves a Bearer session token to a user.

    Sets:
        request.state.actor_id: UUID of the authenticated user (None on public paths)
        request.state.actor_type: HUMAN, or ANONYMOUS on public paths
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and validate authentication."""
        if self._should_skip_auth(request.url.path):
            request.state.actor_id = None
            request.state.actor_type = ActorType.ANONYMOUS
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return self._unauthorized_response("Missing Authorization header")

        match = BEARER_PATTERN.match(auth_header)
        if not match:
            return self._unauthorized_response("Invalid Authorization header format")

        user_id = await self._lookup_session(request, match.group(1).strip())
        if user_id is None:
            return self._unauthorized_response("Invalid or expired session")

        request.state.actor_id = user_id
        request.state.actor_type = ActorType.HUMAN
        return await call_next(request)

    def _should_skip_auth(self, path: str) -> bool:
        """Check if path should skip authentication."""
        if path in SKIP_AUTH_PATHS:
            return True
        if path.startswith(("/docs", "/redoc")):
            return True
        return PUBLIC_PATH_PATTERN.match(path) is not None

    async def _lookup_session(self, request: Request, token: str) -> UUID | None:
        """Return the id of the user owning ``token``, or None."""
        settings = getattr(request.app.state, "settings", None) or get_settings()
        session_factory = request.app.state.session_factory
        async with session_factory() as session:
            user = await DatabaseIdentityProvider(session, settings).get_user_for_session(token)
            if user is None:
                logger.info("session_rejected", path=request.url.path)
                return None
            return user.id

    def _unauthorized_response(self, message: str) -> JSONResponse:
        # Runs before RequestContextMiddleware assigns a request id
        return error_response(
            401,
            ErrorCode.UNAUTHORIZED,
            message,
            headers={"WWW-Authenticate": "Bearer"},
        )
