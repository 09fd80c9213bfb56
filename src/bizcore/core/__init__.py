"""Core services and utilities for Bizcore."""

from .audit import AuditLogger
from .context import (
    ActorType,
    RequestContext,
    create_context,
    current_correlation_id,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
)
from .exceptions import (
    AccessDeniedError,
    AlreadyMemberError,
    AuthenticationError,
    CompanyNotFoundError,
    ConflictError,
    ContextNotSetError,
    DuplicateEntityCodeError,
    DuplicateInvitationError,
    DuplicateTaxNumberError,
    EntityNotFoundError,
    InvalidInputError,
    InvitationAlreadyUsedError,
    InvitationExpiredError,
    InvitationNotFoundError,
    MemberNotFoundError,
    MembershipProvisioningError,
    NotFoundError,
    WorkspaceNotFoundError,
)

__all__ = [
    # Audit
    "AuditLogger",
    # Context
    "ActorType",
    "RequestContext",
    "create_context",
    "current_correlation_id",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    "reset_context",
    "set_context",
    # Exceptions
    "AccessDeniedError",
    "AlreadyMemberError",
    "AuthenticationError",
    "CompanyNotFoundError",
    "ConflictError",
    "ContextNotSetError",
    "DuplicateEntityCodeError",
    "DuplicateInvitationError",
    "DuplicateTaxNumberError",
    "EntityNotFoundError",
    "InvalidInputError",
    "InvitationAlreadyUsedError",
    "InvitationExpiredError",
    "InvitationNotFoundError",
    "MemberNotFoundError",
    "MembershipProvisioningError",
    "NotFoundError",
    "WorkspaceNotFoundError",
]
