"""Database models for Bizcore."""

from .audit import AuditEvent, AuditEventType, AuditSeverity
from .base import Base, TimestampMixin
from .business_entity import (
    BusinessEntity,
    BusinessEntitySource,
    BusinessEntityType,
    Customer,
    Supplier,
)
from .invitation import Invitation, InvitationStatus, InvitationType
from .user import User, UserSession
from .workspace import (
    ADMIN_ROLES,
    ASSIGNABLE_ROLES,
    Company,
    Workspace,
    WorkspaceCompany,
    WorkspaceMember,
    WorkspaceRole,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",
    "BusinessEntity",
    "BusinessEntitySource",
    "BusinessEntityType",
    "Customer",
    "Supplier",
    "Invitation",
    "InvitationStatus",
    "InvitationType",
    "User",
    "UserSession",
    "ADMIN_ROLES",
    "ASSIGNABLE_ROLES",
    "Company",
    "Workspace",
    "WorkspaceCompany",
    "WorkspaceMember",
    "WorkspaceRole",
]
