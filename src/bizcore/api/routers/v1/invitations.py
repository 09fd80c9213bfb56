"""Invitation API endpoints.

Workspace-scoped (Bearer auth, owner or admin):
- POST /v1/workspaces/{workspace_ref}/invitations
- GET /v1/workspaces/{workspace_ref}/invitations
- POST /v1/workspaces/{workspace_ref}/invitations/{invitation_id}/resend
- POST /v1/workspaces/{workspace_ref}/companies/{company_ref}/invitations

Public (the invitation token is the credential):
- GET /v1/invitations/{token}
- POST /v1/invitations/{token}/accept
- POST /v1/invitations/{token}/resume
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from bizcore.api.dependencies import (
    CurrentCompany,
    CurrentUserId,
    CurrentWorkspace,
    get_invitation_service,
)
from bizcore.api.schemas.errors import APIError
from bizcore.api.schemas.invitations import (
    InvitationAcceptRequest,
    InvitationCreateRequest,
    InvitationIssueResponse,
    InvitationListResponse,
)
from bizcore.db.models.invitation import InvitationStatus
from bizcore.invitations.service import InvitationService
from bizcore.invitations.types import AcceptanceResult, InvitationPreview

router = APIRouter(prefix="/workspaces/{workspace_ref}", tags=["invitations"])
public_router = APIRouter(prefix="/invitations", tags=["invitations"])

InvitationServiceDep = Annotated[InvitationService, Depends(get_invitation_service)]

_ISSUE_RESPONSES = {
    201: {"description": "Invitation created; check email_sent for delivery"},
    403: {"model": APIError, "description": "Not an owner or admin for the scope"},
    404: {"model": APIError, "description": "Workspace or company not found"},
    409: {"model": APIError, "description": "Already a member, or an invitation is pending"},
    422: {"model": APIError, "description": "Invalid email or role"},
}


@router.post(
    "/invitations",
    response_model=InvitationIssueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite to a workspace",
    responses=_ISSUE_RESPONSES,
)
async def invite_to_workspace(
    body: InvitationCreateRequest,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    service: InvitationServiceDep,
) -> InvitationIssueResponse:
    """Invite an email address to the whole workspace."""
    result = await service.invite(
        user_id, body.email, body.role, workspace, message=body.message
    )
    return InvitationIssueResponse.from_result(result)


@router.post(
    "/companies/{company_ref}/invitations",
    response_model=InvitationIssueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite to one company",
    responses=_ISSUE_RESPONSES,
)
async def invite_to_company(
    body: InvitationCreateRequest,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    service: InvitationServiceDep,
) -> InvitationIssueResponse:
    """Invite an email address as a member restricted to one company."""
    result = await service.invite(
        user_id, body.email, body.role, workspace, company=company, message=body.message
    )
    return InvitationIssueResponse.from_result(result)


@router.get(
    "/invitations",
    response_model=InvitationListResponse,
    summary="List invitations",
)
async def list_invitations(
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    service: InvitationServiceDep,
    status_filter: Annotated[InvitationStatus | None, Query(alias="status")] = None,
) -> InvitationListResponse:
    """List the workspace's invitations, newest first."""
    invitations = await service.list_invitations(user_id, workspace, status_filter)
    return InvitationListResponse(invitations=invitations, total=len(invitations))


@router.post(
    "/invitations/{invitation_id}/resend",
    response_model=InvitationIssueResponse,
    summary="Resend an invitation email",
    responses={
        404: {"model": APIError, "description": "Invitation not found"},
        409: {"model": APIError, "description": "Invitation is no longer pending"},
        410: {"model": APIError, "description": "Invitation expired"},
    },
)
async def resend_invitation(
    invitation_id: UUID,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    service: InvitationServiceDep,
) -> InvitationIssueResponse:
    result = await service.resend(user_id, workspace, invitation_id)
    return InvitationIssueResponse.from_result(result)


@public_router.get(
    "/{token}",
    response_model=InvitationPreview,
    summary="Preview an invitation",
    responses={
        404: {"model": APIError, "description": "Unknown token"},
        409: {"model": APIError, "description": "Invitation already used"},
        410: {"model": APIError, "description": "Invitation expired"},
    },
)
async def preview_invitation(token: str, service: InvitationServiceDep) -> InvitationPreview:
    """What the accept page shows: who invited whom, to what, with which role."""
    return await service.get_preview(token)


@public_router.post(
    "/{token}/accept",
    response_model=AcceptanceResult,
    summary="Accept an invitation",
    responses={
        404: {"model": APIError, "description": "Unknown token"},
        409: {"model": APIError, "description": "Already used or already a member"},
        410: {"model": APIError, "description": "Invitation expired"},
        422: {"model": APIError, "description": "Invalid name or password"},
        500: {"model": APIError, "description": "Membership not provisioned; retry via resume"},
    },
)
async def accept_invitation(
    token: str,
    body: InvitationAcceptRequest,
    service: InvitationServiceDep,
) -> AcceptanceResult:
    """Accept an invitation, creating the account when the email is new.

    New accounts get a ``session_token`` for immediate sign-in.
    """
    return await service.accept(token, body.name, body.password)


@public_router.post(
    "/{token}/resume",
    response_model=AcceptanceResult,
    summary="Finish an interrupted acceptance",
)
async def resume_acceptance(token: str, service: InvitationServiceDep) -> AcceptanceResult:
    return await service.resume_acceptance(token)
