"""API schemas for invitation endpoints."""

from pydantic import BaseModel, Field

from bizcore.invitations.types import (
    InvitationIssueResult,
    InvitationSummary,
)

# =============================================================================
# Request Schemas
# =============================================================================


class InvitationCreateRequest(BaseModel):
    """Invite an email address to a workspace or company."""

    email: str = Field(..., min_length=3, max_length=255, description="Invitee email address")
    role: str = Field(default="member", description="admin, member or viewer")
    message: str | None = Field(default=None, max_length=2000, description="Personal note")


class InvitationAcceptRequest(BaseModel):
    """Accept an invitation.

    ``name`` and ``password`` are only used when the invited email has no
    account yet.
    """

    name: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


# =============================================================================
# Response Schemas
# =============================================================================


class InvitationIssueResponse(BaseModel):
    """An issued invitation.

    ``invitation_url`` embeds the token so an admin can share the link by
    hand when ``email_sent`` is False.
    """

    invitation: InvitationSummary
    invitation_url: str
    email_sent: bool
    email_error: str | None = None

    @classmethod
    def from_result(cls, result: InvitationIssueResult) -> "InvitationIssueResponse":
        return cls(
            invitation=result.invitation,
            invitation_url=result.invitation_url,
            email_sent=result.email_sent,
            email_error=result.email_error,
        )


class InvitationListResponse(BaseModel):
    invitations: list[InvitationSummary]
    total: int
