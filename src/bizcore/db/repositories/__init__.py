"""Repositories for database access."""

from bizcore.db.repositories.base import BaseRepository
from bizcore.db.repositories.business_entity import (
    BusinessEntityRepository,
    CustomerRepository,
    SupplierRepository,
)
from bizcore.db.repositories.invitation import InvitationRepository
from bizcore.db.repositories.workspace import (
    CompanyRepository,
    MemberRepository,
    UserRepository,
    UserSessionRepository,
    WorkspaceRepository,
)

__all__ = [
    "BaseRepository",
    "BusinessEntityRepository",
    "CompanyRepository",
    "CustomerRepository",
    "InvitationRepository",
    "MemberRepository",
    "SupplierRepository",
    "UserRepository",
    "UserSessionRepository",
    "WorkspaceRepository",
]
