"""Error handling middleware for mapping exceptions to HTTP responses."""

from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from bizcore.api.schemas.errors import ErrorCode, error_response
from bizcore.config.settings import get_settings
from bizcore.core.exceptions import (
    AccessDeniedError,
    AlreadyMemberError,
    AuthenticationError,
    CompanyNotFoundError,
    ConflictError,
    ContextNotSetError,
    DuplicateEntityCodeError,
    DuplicateInvitationError,
    DuplicateTaxNumberError,
    InvalidInputError,
    InvitationAlreadyUsedError,
    InvitationExpiredError,
    InvitationNotFoundError,
    MembershipProvisioningError,
    NotFoundError,
    WorkspaceNotFoundError,
)
from bizcore.core.logging import get_logger, log_exception

logger = get_logger(__name__)

_NOT_FOUND_CODES: dict[type[NotFoundError], ErrorCode] = {
    WorkspaceNotFoundError: ErrorCode.WORKSPACE_NOT_FOUND,
    CompanyNotFoundError: ErrorCode.COMPANY_NOT_FOUND,
    InvitationNotFoundError: ErrorCode.INVITATION_NOT_FOUND,
}


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = self._get_request_id(request)
        status_code, error_code, message, details = self._map_exception(exc)

        if status_code >= 500:
            log_exception(logger, exc, request_id=request_id, path=request.url.path)
        else:
            logger.info(
                "request_failed",
                error_code=error_code,
                http_status=status_code,
                path=request.url.path,
            )

        return error_response(
            status_code,
            error_code,
            message,
            request_id=request_id,
            details=details,
            headers={"X-Request-ID": request_id},
        )

    def _get_request_id(self, request: Request) -> str:
        """Extract request ID from state or generate placeholder."""
        if hasattr(request.state, "request_id"):
            rid = request.state.request_id
            return str(rid) if isinstance(rid, UUID) else rid
        return "unknown"

    def _map_exception(
        self, exc: Exception
    ) -> tuple[int, str, str, dict | None]:
        """Map exception to (status_code, error_code, message, details)."""
        # Authentication errors
        if isinstance(exc, AuthenticationError):
            return (401, ErrorCode.UNAUTHORIZED.value, str(exc), None)

        # Authorization errors
        if isinstance(exc, AccessDeniedError):
            return (
                403,
                ErrorCode.FORBIDDEN.value,
                str(exc),
                {
                    "workspace_id": str(exc.workspace_id),
                    "company_id": str(exc.company_id) if exc.company_id else None,
                    "reason": exc.reason,
                },
            )

        # Lookup errors
        if isinstance(exc, NotFoundError):
            code = _NOT_FOUND_CODES.get(type(exc), ErrorCode.NOT_FOUND)
            return (404, code.value, str(exc), {"reference": str(exc.reference)})

        # Expiry
        if isinstance(exc, InvitationExpiredError):
            return (
                410,
                ErrorCode.INVITATION_EXPIRED.value,
                str(exc),
                {
                    "invitation_id": str(exc.invitation_id),
                    "expired_at": exc.expired_at.isoformat(),
                },
            )

        # Conflicts
        if isinstance(exc, ConflictError):
            return (409, ErrorCode.CONFLICT.value, str(exc), self._conflict_details(exc))

        # Validation errors
        if isinstance(exc, InvalidInputError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                str(exc),
                {"field": exc.field} if exc.field else None,
            )

        if isinstance(exc, ValidationError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": exc.errors(include_url=False, include_context=False)},
            )

        # Saga left an accepted invitation without its membership
        if isinstance(exc, MembershipProvisioningError):
            return (
                500,
                ErrorCode.MEMBERSHIP_PROVISIONING_FAILED.value,
                str(exc),
                {"invitation_id": str(exc.invitation_id), "retryable": True},
            )

        # Context errors (internal)
        if isinstance(exc, ContextNotSetError):
            return (
                500,
                ErrorCode.INTERNAL_ERROR.value,
                "Internal server error: context not initialized",
                None,
            )

        # Generic exceptions
        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if get_settings().DEBUG else None,
        )

    def _conflict_details(self, exc: ConflictError) -> dict | None:
        if isinstance(exc, DuplicateInvitationError):
            return {
                "reason": "duplicate_invitation",
                "existing_invitation_id": str(exc.existing_invitation_id),
            }
        if isinstance(exc, AlreadyMemberError):
            return {"reason": "already_member", "user_id": str(exc.user_id)}
        if isinstance(exc, InvitationAlreadyUsedError):
            return {"reason": "invitation_not_pending", "status": exc.status}
        if isinstance(exc, DuplicateTaxNumberError):
            return {
                "reason": "duplicate_tax_number",
                "existing_entity_id": str(exc.existing_entity_id),
            }
        if isinstance(exc, DuplicateEntityCodeError):
            return {
                "reason": f"duplicate_{exc.code_type}",
                "existing_entity_id": str(exc.existing_entity_id),
            }
        return None
