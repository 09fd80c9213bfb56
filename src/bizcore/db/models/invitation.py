"""Invitation model for workspace and company membership."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin, UTCDateTime


class InvitationType(str, Enum):
    """Scope an invitation grants."""

    WORKSPACE = "workspace"
    COMPANY = "company"


class InvitationStatus(str, Enum):
    """Invitation lifecycle states.

    pending -> accepted_pending_membership -> accepted
    pending -> expired
    """

    PENDING = "pending"
    ACCEPTED_PENDING_MEMBERSHIP = "accepted_pending_membership"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class Invitation(Base, TimestampMixin):
    """A single-use, expiring invitation to join a workspace or company.

    At most one pending invitation exists per (email, workspace) for
    workspace invitations and per (email, company) for company invitations;
    the invitation service enforces this before inserting.
    """

    __tablename__ = "invitations"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)

    workspace_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )
    invited_by: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(40), nullable=False, default=InvitationStatus.PENDING.value
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    accepted_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (
        Index("idx_invitations_workspace_email_status", "workspace_id", "email", "status"),
        Index("idx_invitations_company_email_status", "company_id", "email", "status"),
        Index("idx_invitations_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, email={self.email}, status={self.status})>"
