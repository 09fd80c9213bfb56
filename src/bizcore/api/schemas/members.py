"""API schemas for membership and access endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field

from bizcore.db.models.workspace import WorkspaceRole
from bizcore.invitations.types import CompanySummary, WorkspaceSummary
from bizcore.tenancy.members import MemberInfo


class MemberListResponse(BaseModel):
    members: list[MemberInfo]
    total: int


class MemberRoleUpdateRequest(BaseModel):
    role: str = Field(..., description="admin, member or viewer")


class AccessResponse(BaseModel):
    """The caller's effective access to a company."""

    workspace: WorkspaceSummary
    company: CompanySummary
    role: WorkspaceRole
    is_admin: bool
    restricted_to_company: UUID | None = None
