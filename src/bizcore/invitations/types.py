"""Types returned by the invitation lifecycle."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from bizcore.db.models.invitation import InvitationStatus, InvitationType
from bizcore.db.models.workspace import WorkspaceRole


class WorkspaceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str


class CompanySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str | None = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str


class InvitationSummary(BaseModel):
    """An invitation without its secret token."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    type: InvitationType
    role: WorkspaceRole
    status: InvitationStatus
    workspace_id: UUID
    company_id: UUID | None = None
    invited_by: UUID
    message: str | None = None
    expires_at: datetime
    created_at: datetime
    responded_at: datetime | None = None
    accepted_by: UUID | None = None


class InvitationIssueResult(BaseModel):
    """Outcome of issuing or resending an invitation.

    The invitation is committed before the email is sent, so a delivery
    failure leaves a valid invitation behind: ``email_sent`` is False and
    ``email_error`` says why.
    """

    invitation: InvitationSummary
    token: str
    invitation_url: str
    email_sent: bool
    email_error: str | None = None


class InvitationPreview(BaseModel):
    """What an invitee sees before accepting."""

    email: str
    type: InvitationType
    role: WorkspaceRole
    message: str | None = None
    expires_at: datetime
    workspace: WorkspaceSummary
    company: CompanySummary | None = None
    inviter: UserSummary | None = None


class AcceptanceResult(BaseModel):
    """Outcome of accepting an invitation.

    ``session_token`` is set when a new account was created, so the client can
    sign the user in without a second round trip. ``company`` is the invited
    company, or the workspace's first company for workspace invitations.
    """

    invitation_id: UUID
    user: UserSummary
    workspace: WorkspaceSummary
    company: CompanySummary | None = None
    session_token: str | None = None
    created_user: bool = False
