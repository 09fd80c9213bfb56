"""Workspace and company creation."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import ConflictError, InvalidInputError
from bizcore.core.logging import get_logger
from bizcore.db.models.audit import AuditEventType
from bizcore.db.models.workspace import Company, Workspace
from bizcore.db.repositories.workspace import CompanyRepository, WorkspaceRepository
from bizcore.tenancy.slug import derive_company_slug, slugify

logger = get_logger(__name__)


class WorkspaceSlugTakenError(ConflictError):
    """Raised when a workspace slug is already in use."""

    def __init__(self, slug: str):
        super().__init__(f"Workspace slug already taken: {slug}")
        self.slug = slug


class WorkspaceService:
    """Creates workspaces and the companies inside them.

    Company slugs are derived from the name and stored once here; they are
    never recomputed when a company is renamed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditLogger(db)
        self.workspaces = WorkspaceRepository(db)
        self.companies = CompanyRepository(db)

    async def create_workspace(
        self,
        owner_id: UUID,
        name: str,
        slug: str | None = None,
    ) -> Workspace:
        """Create a workspace owned by ``owner_id``.

        Args:
            owner_id: The owning user (gets no membership row)
            name: Display name
            slug: URL slug; derived from the name when omitted

        Raises:
            InvalidInputError: If no usable slug can be formed
            WorkspaceSlugTakenError: If the slug is already used
        """
        normalized = slugify(slug or name)
        if not normalized:
            raise InvalidInputError("Workspace slug cannot be empty", field="slug")
        if await self.workspaces.get_by_slug(normalized) is not None:
            raise WorkspaceSlugTakenError(normalized)

        workspace = await self.workspaces.create(
            Workspace(name=name, slug=normalized, owner_id=owner_id)
        )
        await self.audit.log_event(
            AuditEventType.WORKSPACE_CREATED,
            {"name": name, "slug": normalized},
            workspace_id=workspace.id,
            user_id=owner_id,
            resource_type="workspace",
            resource_id=workspace.id,
        )
        logger.info("workspace_created", workspace_id=str(workspace.id), slug=normalized)
        return workspace

    async def add_company(self, workspace: Workspace, name: str) -> Company:
        """Create a company in ``workspace`` with its slug stored from the name."""
        if not name or not name.strip():
            raise InvalidInputError("Company name cannot be empty", field="name")

        company = Company(name=name.strip(), slug=derive_company_slug(name) or None)
        await self.companies.add_to_workspace(company, workspace.id)

        await self.audit.log_event(
            AuditEventType.COMPANY_CREATED,
            {"company_id": str(company.id), "name": company.name, "slug": company.slug},
            workspace_id=workspace.id,
            resource_type="company",
            resource_id=company.id,
        )
        logger.info(
            "company_created",
            workspace_id=str(workspace.id),
            company_id=str(company.id),
            slug=company.slug,
        )
        return company
