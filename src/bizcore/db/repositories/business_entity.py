"""Business entity and legacy customer/supplier repositories."""

from uuid import UUID

from sqlalchemy import func, select

from bizcore.db.models.business_entity import (
    BusinessEntity,
    BusinessEntitySource,
    BusinessEntityType,
    Customer,
    Supplier,
)
from bizcore.db.repositories.base import BaseRepository


def _types_with_role(role: BusinessEntityType) -> list[str]:
    """Entity types that include ``role`` (a customer filter also matches BOTH)."""
    return [t.value for t in BusinessEntityType if role in t.roles]


def _contains_pattern(text: str) -> str:
    """LIKE pattern matching ``text`` literally anywhere in the value."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BusinessEntityRepository(BaseRepository[BusinessEntity]):
    """Lookups on live (not soft-deleted) business entities."""

    def _active(self):
        return select(BusinessEntity).where(BusinessEntity.deleted_at.is_(None))

    async def get_in_company(
        self, workspace_id: UUID, company_id: UUID, entity_id: UUID
    ) -> BusinessEntity | None:
        stmt = self._active().where(
            BusinessEntity.id == entity_id,
            BusinessEntity.workspace_id == workspace_id,
            BusinessEntity.company_id == company_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_tax_number(
        self,
        workspace_id: UUID,
        tax_number: str,
        exclude_id: UUID | None = None,
    ) -> BusinessEntity | None:
        """Find the live entity holding ``tax_number`` anywhere in the workspace."""
        stmt = self._active().where(
            BusinessEntity.workspace_id == workspace_id,
            BusinessEntity.tax_number == tax_number,
        )
        if exclude_id is not None:
            stmt = stmt.where(BusinessEntity.id != exclude_id)
        result = await self.db.execute(stmt.order_by(BusinessEntity.created_at).limit(1))
        return result.scalar_one_or_none()

    async def find_by_code(
        self,
        workspace_id: UUID,
        company_id: UUID,
        role: BusinessEntityType,
        code: str,
        exclude_id: UUID | None = None,
    ) -> BusinessEntity | None:
        """Find the live entity in a company holding ``code`` for ``role``.

        Customer codes are compared against ``customer_code`` among entities
        whose type includes customer; supplier codes likewise.
        """
        column = (
            BusinessEntity.customer_code
            if role is BusinessEntityType.CUSTOMER
            else BusinessEntity.supplier_code
        )
        stmt = self._active().where(
            BusinessEntity.workspace_id == workspace_id,
            BusinessEntity.company_id == company_id,
            BusinessEntity.entity_type.in_(_types_with_role(role)),
            column == code,
        )
        if exclude_id is not None:
            stmt = stmt.where(BusinessEntity.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def find_by_name(
        self, workspace_id: UUID, company_id: UUID, name: str
    ) -> list[BusinessEntity]:
        """Live entities in a company with exactly this name, oldest first."""
        stmt = (
            self._active()
            .where(
                BusinessEntity.workspace_id == workspace_id,
                BusinessEntity.company_id == company_id,
                BusinessEntity.name == name,
            )
            .order_by(BusinessEntity.created_at, BusinessEntity.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_source(
        self, role: BusinessEntityType, source_id: UUID
    ) -> BusinessEntity | None:
        """Find the entity a legacy customer or supplier row was consolidated into."""
        stmt = (
            select(BusinessEntity)
            .join(BusinessEntitySource, BusinessEntitySource.entity_id == BusinessEntity.id)
            .where(
                BusinessEntitySource.source_role == role.value,
                BusinessEntitySource.source_id == source_id,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_source(
        self, entity: BusinessEntity, role: BusinessEntityType, source_id: UUID
    ) -> BusinessEntitySource:
        """Record that a legacy row was consolidated into ``entity``."""
        link = BusinessEntitySource(
            entity_id=entity.id, source_role=role.value, source_id=source_id
        )
        self.db.add(link)
        await self.db.flush()
        return link

    async def list_sources(self, entity_id: UUID) -> list[BusinessEntitySource]:
        """Legacy rows consolidated into an entity, in consolidation order."""
        stmt = (
            select(BusinessEntitySource)
            .where(BusinessEntitySource.entity_id == entity_id)
            .order_by(BusinessEntitySource.created_at, BusinessEntitySource.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_company(
        self,
        workspace_id: UUID,
        company_id: UUID,
        role: BusinessEntityType | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[BusinessEntity]:
        """List live entities of a company, optionally filtered by role and name."""
        stmt = self._active().where(
            BusinessEntity.workspace_id == workspace_id,
            BusinessEntity.company_id == company_id,
        )
        if role is not None and role is not BusinessEntityType.BOTH:
            stmt = stmt.where(BusinessEntity.entity_type.in_(_types_with_role(role)))
        elif role is BusinessEntityType.BOTH:
            stmt = stmt.where(BusinessEntity.entity_type == BusinessEntityType.BOTH.value)
        if search:
            stmt = stmt.where(BusinessEntity.name.ilike(_contains_pattern(search), escape="\\"))
        stmt = stmt.order_by(BusinessEntity.name, BusinessEntity.id).limit(limit).offset(offset)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def type_counts(self, workspace_id: UUID | None = None) -> dict[str, int]:
        """Count live entities per entity type."""
        stmt = (
            select(BusinessEntity.entity_type, func.count(BusinessEntity.id))
            .where(BusinessEntity.deleted_at.is_(None))
            .group_by(BusinessEntity.entity_type)
        )
        if workspace_id is not None:
            stmt = stmt.where(BusinessEntity.workspace_id == workspace_id)
        result = await self.db.execute(stmt)
        return {entity_type: count for entity_type, count in result.all()}


class CustomerRepository(BaseRepository[Customer]):
    """Legacy customer rows."""

    async def list_active(self, workspace_id: UUID | None = None) -> list[Customer]:
        stmt = select(Customer).where(Customer.deleted_at.is_(None))
        if workspace_id is not None:
            stmt = stmt.where(Customer.workspace_id == workspace_id)
        result = await self.db.execute(stmt.order_by(Customer.created_at, Customer.id))
        return list(result.scalars().all())


class SupplierRepository(BaseRepository[Supplier]):
    """Legacy supplier rows."""

    async def list_active(self, workspace_id: UUID | None = None) -> list[Supplier]:
        stmt = select(Supplier).where(Supplier.deleted_at.is_(None))
        if workspace_id is not None:
            stmt = stmt.where(Supplier.workspace_id == workspace_id)
        result = await self.db.execute(stmt.order_by(Supplier.created_at, Supplier.id))
        return list(result.scalars().all())
