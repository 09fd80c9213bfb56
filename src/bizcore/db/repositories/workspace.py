"""Repositories for workspaces, companies, members, users and sessions."""

from uuid import UUID

from sqlalchemy import select

from bizcore.db.models.user import User, UserSession
from bizcore.db.models.workspace import Company, Workspace, WorkspaceCompany, WorkspaceMember
from bizcore.db.repositories.base import BaseRepository


class WorkspaceRepository(BaseRepository[Workspace]):
    """Workspace lookups."""

    async def get_by_slug(self, slug: str) -> Workspace | None:
        """Get a workspace by slug (slugs are stored lowercased)."""
        stmt = select(Workspace).where(Workspace.slug == slug.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()


class CompanyRepository(BaseRepository[Company]):
    """Company lookups, always scoped through the workspace edge table."""

    async def get_in_workspace(self, company_id: UUID, workspace_id: UUID) -> Company | None:
        """Get a company by id only if it is linked to ``workspace_id``."""
        stmt = (
            select(Company)
            .join(WorkspaceCompany, WorkspaceCompany.company_id == Company.id)
            .where(Company.id == company_id, WorkspaceCompany.workspace_id == workspace_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_workspace(self, workspace_id: UUID) -> list[Company]:
        """All companies linked to a workspace, oldest first."""
        stmt = (
            select(Company)
            .join(WorkspaceCompany, WorkspaceCompany.company_id == Company.id)
            .where(WorkspaceCompany.workspace_id == workspace_id)
            .order_by(Company.created_at, Company.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add_to_workspace(self, company: Company, workspace_id: UUID) -> Company:
        """Insert a company and link it to its workspace."""
        self.db.add(company)
        await self.db.flush()
        self.db.add(WorkspaceCompany(workspace_id=workspace_id, company_id=company.id))
        await self.db.flush()
        return company


class MemberRepository(BaseRepository[WorkspaceMember]):
    """Workspace membership rows."""

    async def get_membership(self, workspace_id: UUID, user_id: UUID) -> WorkspaceMember | None:
        stmt = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_with_users(self, workspace_id: UUID) -> list[tuple[WorkspaceMember, User]]:
        """Members of a workspace joined to their user rows, by join date."""
        stmt = (
            select(WorkspaceMember, User)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.joined_at, WorkspaceMember.id)
        )
        result = await self.db.execute(stmt)
        return [(member, user) for member, user in result.all()]


class UserRepository(BaseRepository[User]):
    """User lookups."""

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email (emails are stored lowercased)."""
        stmt = select(User).where(User.email == email.strip().lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()


class UserSessionRepository(BaseRepository[UserSession]):
    """Bearer session lookups."""

    async def get_by_token(self, token: str) -> UserSession | None:
        stmt = select(UserSession).where(UserSession.token == token)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
