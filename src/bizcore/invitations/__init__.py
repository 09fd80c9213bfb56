"""Invitation lifecycle and delivery."""

from bizcore.invitations.email import (
    EmailDeliveryError,
    EmailSender,
    LoggingEmailSender,
    ResendEmailSender,
    build_email_sender,
    render_invitation_email,
)
from bizcore.invitations.service import InvitationService, normalize_email
from bizcore.invitations.types import (
    AcceptanceResult,
    CompanySummary,
    InvitationIssueResult,
    InvitationPreview,
    InvitationSummary,
    UserSummary,
    WorkspaceSummary,
)

__all__ = [
    "AcceptanceResult",
    "CompanySummary",
    "EmailDeliveryError",
    "EmailSender",
    "InvitationIssueResult",
    "InvitationPreview",
    "InvitationService",
    "InvitationSummary",
    "LoggingEmailSender",
    "ResendEmailSender",
    "UserSummary",
    "WorkspaceSummary",
    "build_email_sender",
    "normalize_email",
    "render_invitation_email",
]
