"""Request context for async-safe tenant-scoped operations.

The context carries who is acting and, once the tenant resolver has run, which
workspace and company the request targets. It is propagated with contextvars
so structured logs and audit events can pick it up without threading it
through every call.

Usage:
    from bizcore.core.context import create_context, request_context

    ctx = create_context(actor_id=user.id)
    with request_context(ctx):
        current = get_current_context()
        current.bind_scope(workspace_id=workspace.id)
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from bizcore.core.exceptions import ContextNotSetError


class ActorType(str, Enum):
    """Type of actor performing the operation."""

    HUMAN = "human"  # Authenticated user via the API
    ANONYMOUS = "anonymous"  # Public endpoints (invitation preview/accept)
    SYSTEM = "system"  # Batch jobs such as consolidation


class RequestContext(BaseModel):
    """Context for a single request or batch operation."""

    # Identity
    request_id: UUID = Field(default_factory=uuid7)
    actor_id: UUID | None = None
    actor_type: ActorType = ActorType.HUMAN

    # Tenant scope, filled in after resolution
    workspace_id: UUID | None = None
    company_id: UUID | None = None

    # Audit
    correlation_id: UUID = Field(default_factory=uuid7)
    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": False}

    def bind_scope(self, workspace_id: UUID, company_id: UUID | None = None) -> None:
        """Record the resolved tenant scope on this context.

        Args:
            workspace_id: The resolved workspace
            company_id: The resolved company, if the request named one
        """
        self.workspace_id = workspace_id
        self.company_id = company_id

    def to_audit_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for audit event_data."""
        return {
            "request_id": str(self.request_id),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "actor_type": self.actor_type.value,
            "workspace_id": str(self.workspace_id) if self.workspace_id else None,
            "company_id": str(self.company_id) if self.company_id else None,
            "correlation_id": str(self.correlation_id),
            "initiated_at": self.initiated_at.isoformat(),
        }


# =============================================================================
# Context Variable Management
# =============================================================================

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext:
    """Get the current request context.

    Raises:
        ContextNotSetError: If no context is set in the current execution context
    """
    ctx = _request_context.get()
    if ctx is None:
        raise ContextNotSetError(
            "No request context is set. Use request_context() context manager."
        )
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    """Get the current request context, or None if not set."""
    return _request_context.get()


def current_correlation_id() -> UUID:
    """Correlation id of the current context, or a fresh one outside a request.

    Services call this when writing audit events so that events raised inside
    one HTTP request share an id, while batch jobs still get a valid value.
    """
    ctx = _request_context.get()
    return ctx.correlation_id if ctx is not None else uuid7()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Set the request context and return a token for restoration.

    Low-level API; prefer the request_context() context manager.
    """
    return _request_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    """Reset the context to its previous value using a token from set_context()."""
    _request_context.reset(token)


@contextmanager
def request_context(ctx: RequestContext):
    """Context manager for setting request context.

    Works for both sync and async code because contextvars are propagated to
    async tasks.

    Args:
        ctx: The context to set for the duration of the block

    Yields:
        The context that was set
    """
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def create_context(
    *,
    actor_id: UUID | None = None,
    actor_type: ActorType | None = None,
    workspace_id: UUID | None = None,
    company_id: UUID | None = None,
    request_id: UUID | None = None,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Factory function to create a RequestContext with defaults.

    Args:
        actor_id: Authenticated user, None for anonymous or system work
        actor_type: Type of actor (HUMAN when actor_id is given, else ANONYMOUS)
        workspace_id: Resolved workspace, if already known
        company_id: Resolved company, if already known
        request_id: Optional request ID (auto-generated if not provided)
        correlation_id: Optional correlation ID (auto-generated if not provided)

    Returns:
        A new RequestContext instance
    """
    if actor_type is None:
        actor_type = ActorType.HUMAN if actor_id is not None else ActorType.ANONYMOUS
    return RequestContext(
        request_id=request_id or uuid7(),
        actor_id=actor_id,
        actor_type=actor_type,
        workspace_id=workspace_id,
        company_id=company_id,
        correlation_id=correlation_id or uuid7(),
    )
