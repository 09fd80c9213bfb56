"""Workspace, company and membership models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, UTCDateTime, utcnow


class WorkspaceRole(str, Enum):
    """Roles a user can hold in a workspace.

    OWNER is implied by ``Workspace.owner_id`` and never stored on a
    membership row.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


# Roles that may be stored on a membership row or granted by invitation
ASSIGNABLE_ROLES = frozenset({WorkspaceRole.ADMIN, WorkspaceRole.MEMBER, WorkspaceRole.VIEWER})

# Roles allowed to manage members and invitations
ADMIN_ROLES = frozenset({WorkspaceRole.OWNER, WorkspaceRole.ADMIN})


class Workspace(Base, TimestampMixin):
    """Top-level tenant. Slugs are unique and stored lowercased."""

    __tablename__ = "workspaces"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    owner_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("users.id"), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, slug={self.slug})>"


class Company(Base, TimestampMixin):
    """Legal entity inside a workspace.

    ``slug`` is written once at creation and never rewritten, so renaming a
    company does not break links. Rows created before slugs were stored have
    ``slug = NULL`` and resolve by the slug derived from their name.
    """

    __tablename__ = "companies"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"


class WorkspaceCompany(Base):
    """Edge linking a company to the single workspace that owns it."""

    __tablename__ = "workspace_companies"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    workspace_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("company_id", name="uq_workspace_companies_company"),
        Index("idx_workspace_companies_workspace", "workspace_id"),
    )


class WorkspaceMember(Base):
    """A non-owner user's membership in a workspace.

    ``permissions`` is a free-form blob; the only key with meaning is
    ``restrictedToCompany``, which confines the member to one company.
    """

    __tablename__ = "workspace_members"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    workspace_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=WorkspaceRole.MEMBER.value)
    permissions: Mapped[dict | str | None] = mapped_column(PortableJSON(), nullable=True)
    invited_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
        Index("idx_workspace_members_user", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkspaceMember(workspace_id={self.workspace_id}, "
            f"user_id={self.user_id}, role={self.role})>"
        )
