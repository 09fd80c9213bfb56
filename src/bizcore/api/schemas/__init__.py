"""API request and response schemas."""

from .entities import BusinessEntityListResponse
from .errors import APIError, ErrorCode
from .health import ComponentHealth, HealthDetailResponse, HealthResponse, HealthStatus
from .invitations import (
    InvitationAcceptRequest,
    InvitationCreateRequest,
    InvitationIssueResponse,
    InvitationListResponse,
)
from .members import AccessResponse, MemberListResponse, MemberRoleUpdateRequest

__all__ = [
    "APIError",
    "AccessResponse",
    "BusinessEntityListResponse",
    "ComponentHealth",
    "ErrorCode",
    "HealthDetailResponse",
    "HealthResponse",
    "HealthStatus",
    "InvitationAcceptRequest",
    "InvitationCreateRequest",
    "InvitationIssueResponse",
    "InvitationListResponse",
    "MemberListResponse",
    "MemberRoleUpdateRequest",
]
