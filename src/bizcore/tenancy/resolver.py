"""Resolution of loose workspace and company references.

URLs address tenants either by id or by slug. The resolver turns such a
reference into the stored row, scoped so that a company is only ever found
through the workspace that owns it.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.exceptions import CompanyNotFoundError, WorkspaceNotFoundError
from bizcore.core.logging import get_logger
from bizcore.db.models.workspace import Company, Workspace
from bizcore.db.repositories.workspace import CompanyRepository, WorkspaceRepository
from bizcore.tenancy.slug import derive_company_slug

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedScope:
    """A workspace and, optionally, one of its companies."""

    workspace: Workspace
    company: Company | None = None


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def company_slug(company: Company) -> str:
    """The slug a company is addressed by: stored if present, else derived."""
    return company.slug or derive_company_slug(company.name)


class IdentityResolver:
    """Resolves workspace and company references. Read-only."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.workspaces = WorkspaceRepository(db)
        self.companies = CompanyRepository(db)

    async def resolve_workspace(self, loose: str) -> Workspace:
        """Resolve a workspace by id, then by slug (case-insensitive).

        Args:
            loose: A workspace id or slug

        Returns:
            The workspace

        Raises:
            WorkspaceNotFoundError: If nothing matches
        """
        reference = (loose or "").strip()
        if not reference:
            raise WorkspaceNotFoundError(loose)

        workspace_id = _parse_uuid(reference)
        if workspace_id is not None:
            workspace = await self.workspaces.get(workspace_id)
            if workspace is not None:
                return workspace

        workspace = await self.workspaces.get_by_slug(reference)
        if workspace is None:
            logger.debug("workspace_not_resolved", reference=reference)
            raise WorkspaceNotFoundError(reference)
        return workspace

    async def resolve_company(self, loose: str, workspace: Workspace) -> Company:
        """Resolve a company of ``workspace`` by id, then by slug.

        Slug matching is case-insensitive. If several companies share a slug
        (two names with the same first word) the oldest one wins.

        Args:
            loose: A company id or slug
            workspace: The workspace that must own the company

        Returns:
            The company

        Raises:
            CompanyNotFoundError: If nothing in this workspace matches
        """
        reference = (loose or "").strip()
        if not reference:
            raise CompanyNotFoundError(loose, workspace_id=workspace.id)

        company_id = _parse_uuid(reference)
        if company_id is not None:
            company = await self.companies.get_in_workspace(company_id, workspace.id)
            if company is not None:
                return company

        wanted = reference.lower()
        for company in await self.companies.list_for_workspace(workspace.id):
            if company_slug(company).lower() == wanted:
                return company

        logger.debug(
            "company_not_resolved",
            reference=reference,
            workspace_id=str(workspace.id),
        )
        raise CompanyNotFoundError(reference, workspace_id=workspace.id)

    async def resolve_scope(
        self, workspace_ref: str, company_ref: str | None = None
    ) -> ResolvedScope:
        """Resolve a workspace and, when given, a company inside it."""
        workspace = await self.resolve_workspace(workspace_ref)
        company = None
        if company_ref is not None:
            company = await self.resolve_company(company_ref, workspace)
        return ResolvedScope(workspace=workspace, company=company)
