"""FastAPI dependencies for API endpoints.

Every tenant-scoped endpoint goes through the same chain: the workspace (and
company) references in the path are resolved, then the caller's access is
evaluated, and only then does the endpoint run.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request

from bizcore.config.settings import Settings, get_settings
from bizcore.core.context import RequestContext, get_current_context, get_current_context_or_none
from bizcore.core.exceptions import AuthenticationError
from bizcore.db.dependencies import DbSession, get_db
from bizcore.db.models.workspace import Company, Workspace
from bizcore.entities.service import BusinessEntityService
from bizcore.invitations.email import EmailSender
from bizcore.invitations.service import InvitationService
from bizcore.tenancy.access import AccessDecision, AccessEvaluator
from bizcore.tenancy.members import MembershipService
from bizcore.tenancy.resolver import IdentityResolver

__all__ = [
    "CurrentCompany",
    "CurrentUserId",
    "CurrentWorkspace",
    "DbSession",
    "get_db",
    "get_request_context",
    "get_request_id",
]


def get_request_context() -> RequestContext:
    """Get the current request context from ContextVar.

    Raises:
        ContextNotSetError: If RequestContextMiddleware hasn't set the context
    """
    return get_current_context()


def get_request_id(request: Request) -> str:
    """Get the request ID set by RequestContextMiddleware."""
    return str(getattr(request.state, "request_id", "unknown"))


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_current_user_id(request: Request) -> UUID:
    """The authenticated user's id.

    Raises:
        AuthenticationError: On requests that bypassed authentication
    """
    actor_id = getattr(request.state, "actor_id", None)
    if actor_id is None:
        raise AuthenticationError("Authentication required")
    return actor_id


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]


# =============================================================================
# Tenant resolution
# =============================================================================


async def resolve_workspace(workspace_ref: str, db: DbSession) -> Workspace:
    """Resolve the ``workspace_ref`` path parameter (id or slug).

    Raises:
        WorkspaceNotFoundError: If nothing matches
    """
    workspace = await IdentityResolver(db).resolve_workspace(workspace_ref)
    ctx = get_current_context_or_none()
    if ctx is not None:
        ctx.bind_scope(workspace.id)
    return workspace


CurrentWorkspace = Annotated[Workspace, Depends(resolve_workspace)]


async def resolve_company(
    company_ref: str, workspace: CurrentWorkspace, db: DbSession
) -> Company:
    """Resolve the ``company_ref`` path parameter inside the resolved workspace.

    Raises:
        CompanyNotFoundError: If nothing matches in this workspace
    """
    company = await IdentityResolver(db).resolve_company(company_ref, workspace)
    ctx = get_current_context_or_none()
    if ctx is not None:
        ctx.bind_scope(workspace.id, company.id)
    return company


CurrentCompany = Annotated[Company, Depends(resolve_company)]


async def authorize_company(
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    db: DbSession,
) -> AccessDecision:
    """Require access to the resolved company.

    Raises:
        AccessDeniedError: If the caller is not a member or is restricted to
            another company
    """
    return await AccessEvaluator(db).authorize(user_id, workspace, company)


CompanyAccess = Annotated[AccessDecision, Depends(authorize_company)]


# =============================================================================
# Services
# =============================================================================


def get_invitation_service(
    db: DbSession,
    email_sender: Annotated[EmailSender, Depends(get_email_sender)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> InvitationService:
    return InvitationService(db, email_sender, settings=settings)


def get_membership_service(db: DbSession) -> MembershipService:
    return MembershipService(db)


def get_entity_service(db: DbSession) -> BusinessEntityService:
    return BusinessEntityService(db)
