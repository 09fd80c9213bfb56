"""Error body shared by every non-2xx bizcore response.

FastAPI's own request-body validation keeps its ``{"detail": [...]}`` format;
everything raised by bizcore code is rendered as ``APIError``.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"

    NOT_FOUND = "not_found"
    WORKSPACE_NOT_FOUND = "workspace_not_found"
    COMPANY_NOT_FOUND = "company_not_found"
    INVITATION_NOT_FOUND = "invitation_not_found"

    CONFLICT = "conflict"
    INVITATION_EXPIRED = "invitation_expired"
    VALIDATION_ERROR = "validation_error"

    # Acceptance recorded but the membership row is missing; retry via /resume
    MEMBERSHIP_PROVISIONING_FAILED = "membership_provisioning_failed"
    INTERNAL_ERROR = "internal_error"


class APIError(BaseModel):
    """Error response body."""

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    details: dict[str, Any] | None = Field(
        default=None,
        description="Structured context, e.g. the denial reason or the conflicting id",
    )
    request_id: str = Field(..., description="X-Request-ID of the failed request")
    timestamp: datetime

    model_config = {"json_schema_extra": {"example": {
        "error_code": "forbidden",
        "message": "Access denied to workspace 0190c3e2-...: outside_company_scope",
        "details": {
            "workspace_id": "0190c3e2-7b1a-7000-8000-5f0e2b6c1d11",
            "company_id": "0190c3e2-7b1a-7000-8000-9a41c7de0a22",
            "reason": "outside_company_scope",
        },
        "request_id": "0190c3e2-7b1a-7000-8000-abcdef123456",
        "timestamp": "2026-01-30T12:00:00Z",
    }}}


def error_response(
    status_code: int,
    error_code: ErrorCode | str,
    message: str,
    *,
    request_id: str = "unknown",
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render an ``APIError`` as a JSON response stamped with the current time."""
    body = APIError(
        error_code=error_code.value if isinstance(error_code, ErrorCode) else error_code,
        message=message,
        details=details,
        request_id=request_id,
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )
