"""Business entity service.

Create, read, list and soft-delete business entities of one company. Writes
are flushed; the caller owns the transaction.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import (
    DuplicateEntityCodeError,
    DuplicateTaxNumberError,
    EntityNotFoundError,
)
from bizcore.core.logging import get_logger
from bizcore.db.models.audit import AuditEventType
from bizcore.db.models.base import utcnow
from bizcore.db.models.business_entity import BusinessEntity, BusinessEntityType
from bizcore.db.repositories.business_entity import BusinessEntityRepository

from .types import CODE_FIELDS, BusinessEntityCreate, BusinessEntityInfo

logger = get_logger(__name__)


async def ensure_unique(
    repository: BusinessEntityRepository,
    workspace_id: UUID,
    company_id: UUID,
    roles: frozenset[BusinessEntityType],
    tax_number: str | None,
    codes: dict[BusinessEntityType, str | None],
    exclude_id: UUID | None = None,
) -> None:
    """Check the uniqueness rules for a business entity, ignoring soft-deleted rows.

    Args:
        repository: Repository bound to the current session
        workspace_id: Workspace of the entity
        company_id: Company of the entity
        roles: Roles the entity will play
        tax_number: Its tax number (unique in the workspace)
        codes: Customer/supplier codes by role (unique per company and role)
        exclude_id: The entity itself, when checking a merge target

    Raises:
        DuplicateTaxNumberError: If another live entity holds the tax number
        DuplicateEntityCodeError: If another live entity holds a code
    """
    if tax_number:
        holder = await repository.find_by_tax_number(workspace_id, tax_number, exclude_id)
        if holder is not None:
            raise DuplicateTaxNumberError(tax_number, holder.id)

    for role in sorted(roles, key=lambda r: r.value):
        code = codes.get(role)
        if not code:
            continue
        holder = await repository.find_by_code(workspace_id, company_id, role, code, exclude_id)
        if holder is not None:
            raise DuplicateEntityCodeError(CODE_FIELDS[role], code, holder.id)


class BusinessEntityService:
    """Direct CRUD on business entities within a company."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditLogger(db)
        self.entities = BusinessEntityRepository(db)

    async def create(
        self,
        workspace_id: UUID,
        company_id: UUID,
        data: BusinessEntityCreate,
        created_by: UUID | None = None,
    ) -> BusinessEntityInfo:
        """Create a business entity.

        Args:
            workspace_id: Owning workspace
            company_id: Owning company
            data: Validated entity fields
            created_by: Acting user

        Returns:
            The created entity

        Raises:
            DuplicateTaxNumberError: If the tax number is taken in the workspace
            DuplicateEntityCodeError: If a customer or supplier code is taken in the company
        """
        roles = data.entity_type.roles
        await ensure_unique(
            self.entities,
            workspace_id,
            company_id,
            roles,
            data.tax_number,
            {
                BusinessEntityType.CUSTOMER: data.customer_code,
                BusinessEntityType.SUPPLIER: data.supplier_code,
            },
        )

        values = data.model_dump(exclude={"entity_type"})
        entity = await self.entities.create(
            BusinessEntity(
                workspace_id=workspace_id,
                company_id=company_id,
                entity_type=data.entity_type.value,
                created_by=created_by,
                **values,
            )
        )

        await self.audit.log_event(
            AuditEventType.ENTITY_CREATED,
            {"name": entity.name, "entity_type": entity.entity_type},
            workspace_id=workspace_id,
            user_id=created_by,
            resource_type="business_entity",
            resource_id=entity.id,
        )
        logger.info(
            "business_entity_created",
            entity_id=str(entity.id),
            company_id=str(company_id),
            entity_type=entity.entity_type,
        )
        return BusinessEntityInfo.model_validate(entity)

    async def get(self, workspace_id: UUID, company_id: UUID, entity_id: UUID) -> BusinessEntityInfo:
        """Get a live entity of the company.

        Raises:
            EntityNotFoundError: If no live entity matches in this company
        """
        entity = await self.entities.get_in_company(workspace_id, company_id, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return BusinessEntityInfo.model_validate(entity)

    async def list(
        self,
        workspace_id: UUID,
        company_id: UUID,
        role: BusinessEntityType | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BusinessEntityInfo]:
        """List live entities ordered by name.

        A customer or supplier filter also returns entities of type ``both``.
        """
        entities = await self.entities.list_for_company(
            workspace_id, company_id, role=role, search=search, limit=limit, offset=offset
        )
        return [BusinessEntityInfo.model_validate(entity) for entity in entities]

    async def soft_delete(
        self,
        workspace_id: UUID,
        company_id: UUID,
        entity_id: UUID,
        deleted_by: UUID | None = None,
    ) -> None:
        """Mark an entity deleted; it stops counting for uniqueness.

        Raises:
            EntityNotFoundError: If no live entity matches in this company
        """
        entity = await self.entities.get_in_company(workspace_id, company_id, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)

        entity.deleted_at = utcnow()
        entity.status = "deleted"
        await self.db.flush()

        await self.audit.log_event(
            AuditEventType.ENTITY_DELETED,
            {"name": entity.name},
            workspace_id=workspace_id,
            user_id=deleted_by,
            resource_type="business_entity",
            resource_id=entity_id,
        )
        logger.info("business_entity_deleted", entity_id=str(entity_id))
