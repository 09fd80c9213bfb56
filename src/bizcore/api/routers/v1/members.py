"""Membership and access API endpoints.

- GET /v1/workspaces/{workspace_ref}/members
- PATCH /v1/workspaces/{workspace_ref}/members/{user_id}
- DELETE /v1/workspaces/{workspace_ref}/members/{user_id}
- GET /v1/workspaces/{workspace_ref}/companies/{company_ref}/access
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from bizcore.api.dependencies import (
    CompanyAccess,
    CurrentCompany,
    CurrentUserId,
    CurrentWorkspace,
    DbSession,
    get_membership_service,
)
from bizcore.api.schemas.errors import APIError
from bizcore.api.schemas.members import (
    AccessResponse,
    MemberListResponse,
    MemberRoleUpdateRequest,
)
from bizcore.invitations.types import CompanySummary, WorkspaceSummary
from bizcore.tenancy.access import RestrictedToCompany
from bizcore.tenancy.members import MemberInfo, MembershipService

router = APIRouter(prefix="/workspaces/{workspace_ref}", tags=["members"])

MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]


@router.get("/members", response_model=MemberListResponse, summary="List members")
async def list_members(
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    service: MembershipServiceDep,
) -> MemberListResponse:
    """List the owner and all members of the workspace."""
    members = await service.list_members(user_id, workspace)
    return MemberListResponse(members=members, total=len(members))


@router.patch(
    "/members/{member_user_id}",
    response_model=MemberInfo,
    summary="Change a member's role",
    responses={
        403: {"model": APIError, "description": "Not an owner or admin"},
        404: {"model": APIError, "description": "Not a member"},
        422: {"model": APIError, "description": "Invalid role, or target is the owner"},
    },
)
async def change_member_role(
    member_user_id: UUID,
    body: MemberRoleUpdateRequest,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    service: MembershipServiceDep,
    db: DbSession,
) -> MemberInfo:
    member = await service.change_role(user_id, workspace, member_user_id, body.role)
    await db.commit()
    return member


@router.delete(
    "/members/{member_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member",
    responses={
        403: {"model": APIError, "description": "Not an owner or admin"},
        404: {"model": APIError, "description": "Not a member"},
        422: {"model": APIError, "description": "Target is the owner"},
    },
)
async def remove_member(
    member_user_id: UUID,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    service: MembershipServiceDep,
    db: DbSession,
) -> Response:
    await service.remove_member(user_id, workspace, member_user_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/companies/{company_ref}/access",
    response_model=AccessResponse,
    summary="Effective access to a company",
    responses={
        403: {"model": APIError, "description": "No access to this company"},
        404: {"model": APIError, "description": "Workspace or company not found"},
    },
)
async def get_company_access(
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    decision: CompanyAccess,
) -> AccessResponse:
    """Resolve the scope and report the caller's role in it.

    This is the check every company page performs before rendering.
    """
    restricted = decision.scope if isinstance(decision.scope, RestrictedToCompany) else None
    return AccessResponse(
        workspace=WorkspaceSummary.model_validate(workspace),
        company=CompanySummary.model_validate(company),
        role=decision.role,
        is_admin=decision.is_admin,
        restricted_to_company=restricted.company_id if restricted else None,
    )
