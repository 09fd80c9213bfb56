"""Consolidation of legacy customers and suppliers into business entities.

Each legacy row is matched against existing business entities with a fixed
precedence:

0. Provenance: the row is already linked to an entity in
   ``business_entity_sources``. An earlier run consolidated it, so it is
   skipped; re-running is a no-op.
1. Tax number: a live entity in the same workspace has the same non-empty
   tax number.
2. Name and company: a live entity in the same company has exactly the same
   name. The oldest such entity wins.
3. Otherwise a new entity is created, reusing the legacy row's id so foreign
   keys pointing at the old row stay valid.

Merging promotes the entity type to the union of roles, fills only empty
shared fields, and copies in the incoming role's own fields.

Run as a batch with::

    python -m bizcore.entities.consolidation [--workspace-id UUID]
"""

import argparse
import asyncio
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.config.settings import get_settings
from bizcore.core.audit import AuditLogger
from bizcore.core.logging import LogContext, get_logger, setup_logging
from bizcore.db.config import close_db, create_engine_from_settings, create_session_factory
from bizcore.db.models.audit import AuditEventType
from bizcore.db.models.business_entity import BusinessEntity, BusinessEntityType
from bizcore.db.repositories.business_entity import (
    BusinessEntityRepository,
    CustomerRepository,
    SupplierRepository,
)
from bizcore.observability.metrics import record_consolidation

from .service import ensure_unique
from .types import (
    CODE_FIELDS,
    ConsolidationAction,
    ConsolidationFailure,
    ConsolidationOutcome,
    ConsolidationReport,
    EntityTypeSummary,
    MatchRule,
    SourceRecord,
)

logger = get_logger(__name__)

_SOURCE_COLUMNS = {
    BusinessEntityType.CUSTOMER: "source_customer_id",
    BusinessEntityType.SUPPLIER: "source_supplier_id",
}


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ConsolidationEngine:
    """Merges legacy customer and supplier rows into business entities.

    ``consolidate`` only flushes. ``run`` commits after every record and
    rolls back a record that fails, so one bad row never aborts the batch.
    Not safe to run concurrently with itself.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._audit = AuditLogger(session)
        self._entities = BusinessEntityRepository(session)
        self._customers = CustomerRepository(session)
        self._suppliers = SupplierRepository(session)

    async def consolidate(self, record: SourceRecord) -> ConsolidationOutcome:
        """Consolidate one legacy record.

        Args:
            record: Snapshot of a legacy customer or supplier

        Returns:
            ConsolidationOutcome naming the action and the target entity

        Raises:
            DuplicateTaxNumberError: If creating would duplicate a tax number
            DuplicateEntityCodeError: If the record's code is taken in the company
        """
        existing = await self._entities.find_by_source(record.role, record.id)
        if existing is not None:
            return ConsolidationOutcome(
                source_id=record.id,
                role=record.role,
                action=ConsolidationAction.SKIPPED,
                match=MatchRule.PROVENANCE,
                entity_id=existing.id,
                entity_type=BusinessEntityType(existing.entity_type),
            )

        target, rule = await self._find_target(record)
        if target is None:
            return await self._create(record)
        return await self._merge(target, record, rule)

    async def run(self, workspace_id: UUID | None = None) -> ConsolidationReport:
        """Consolidate every live legacy customer, then every live supplier.

        Args:
            workspace_id: Limit the run to one workspace (None = all)

        Returns:
            ConsolidationReport with per-action counts, failures and the
            resulting entity type distribution
        """
        report = ConsolidationReport()
        with LogContext(operation="consolidation"):
            logger.info(
                "consolidation_started",
                workspace_id=str(workspace_id) if workspace_id else None,
            )

            customers = await self._customers.list_active(workspace_id)
            await self._run_pass(
                [SourceRecord.from_customer(row) for row in customers], report
            )

            suppliers = await self._suppliers.list_active(workspace_id)
            await self._run_pass(
                [SourceRecord.from_supplier(row) for row in suppliers], report
            )

            report.summary = await self.summarize(workspace_id)

            await self._audit.log_event(
                AuditEventType.ENTITY_CONSOLIDATED,
                {
                    "created": report.created,
                    "merged": report.merged,
                    "skipped": report.skipped,
                    "failed": report.failed,
                    "summary": report.summary.model_dump(),
                },
                workspace_id=workspace_id,
                resource_type="business_entity",
            )
            await self._session.commit()

            logger.info(
                "consolidation_completed",
                created=report.created,
                merged=report.merged,
                skipped=report.skipped,
                failed=report.failed,
                customer_only=report.summary.customer_only,
                supplier_only=report.summary.supplier_only,
                both=report.summary.both,
            )
        return report

    async def summarize(self, workspace_id: UUID | None = None) -> EntityTypeSummary:
        """Count live business entities by type."""
        counts = await self._entities.type_counts(workspace_id)
        return EntityTypeSummary(
            customer_only=counts.get(BusinessEntityType.CUSTOMER.value, 0),
            supplier_only=counts.get(BusinessEntityType.SUPPLIER.value, 0),
            both=counts.get(BusinessEntityType.BOTH.value, 0),
        )

    async def _run_pass(self, records: list[SourceRecord], report: ConsolidationReport) -> None:
        for record in records:
            try:
                outcome = await self.consolidate(record)
                await self._session.commit()
            except Exception as e:
                await self._session.rollback()
                logger.warning(
                    "consolidation_record_failed",
                    source_id=str(record.id),
                    role=record.role.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                report.failures.append(
                    ConsolidationFailure(
                        source_id=record.id,
                        role=record.role,
                        error_type=type(e).__name__,
                        message=str(e),
                    )
                )
                outcome = ConsolidationOutcome(
                    source_id=record.id, role=record.role, action=ConsolidationAction.FAILED
                )

            report.record(outcome)
            record_consolidation(record.role.value, outcome.action.value)

    async def _find_target(self, record: SourceRecord) -> tuple[BusinessEntity | None, MatchRule]:
        tax_number = record.tax_number
        if tax_number:
            match = await self._entities.find_by_tax_number(record.workspace_id, tax_number)
            if match is not None:
                return match, MatchRule.TAX_NUMBER

        if record.name:
            candidates = await self._entities.find_by_name(
                record.workspace_id, record.company_id, record.name
            )
            if candidates:
                return candidates[0], MatchRule.NAME_AND_COMPANY

        return None, MatchRule.NONE

    async def _create(self, record: SourceRecord) -> ConsolidationOutcome:
        await ensure_unique(
            self._entities,
            record.workspace_id,
            record.company_id,
            frozenset({record.role}),
            record.tax_number,
            {record.role: record.code},
        )

        values = {k: v for k, v in record.shared.items() if v is not None}
        values.update({k: v for k, v in record.role_fields.items() if v is not None})
        values["tax_number"] = record.tax_number
        values[_SOURCE_COLUMNS[record.role]] = record.id

        entity = await self._entities.create(
            BusinessEntity(
                id=record.id,
                workspace_id=record.workspace_id,
                company_id=record.company_id,
                entity_type=record.role.value,
                **values,
            )
        )
        await self._entities.add_source(entity, record.role, record.id)
        await self._audit.log_event(
            AuditEventType.ENTITY_CREATED,
            {"name": entity.name, "entity_type": entity.entity_type, "source": record.role.value},
            workspace_id=record.workspace_id,
            resource_type="business_entity",
            resource_id=entity.id,
        )
        logger.debug("entity_created_from_source", entity_id=str(entity.id), role=record.role.value)

        return ConsolidationOutcome(
            source_id=record.id,
            role=record.role,
            action=ConsolidationAction.CREATED,
            entity_id=entity.id,
            entity_type=record.role,
        )

    async def _merge(
        self, target: BusinessEntity, record: SourceRecord, rule: MatchRule
    ) -> ConsolidationOutcome:
        existing_roles = target.roles
        new_type = BusinessEntityType.from_roles(existing_roles | {record.role})
        role_is_new = record.role not in existing_roles

        shared_updates = {
            field: value
            for field, value in record.shared.items()
            if not _is_empty(value) and _is_empty(getattr(target, field))
        }
        if "tax_number" in shared_updates:
            shared_updates["tax_number"] = record.tax_number
        role_updates = {
            field: value
            for field, value in record.role_fields.items()
            if value is not None and (role_is_new or _is_empty(getattr(target, field)))
        }

        await ensure_unique(
            self._entities,
            target.workspace_id,
            target.company_id,
            frozenset({record.role}),
            shared_updates.get("tax_number"),
            {record.role: role_updates.get(CODE_FIELDS[record.role])},
            exclude_id=target.id,
        )

        for field, value in {**shared_updates, **role_updates}.items():
            setattr(target, field, value)
        target.entity_type = new_type.value
        source_column = _SOURCE_COLUMNS[record.role]
        if getattr(target, source_column) is None:
            setattr(target, source_column, record.id)
        await self._session.flush()
        await self._entities.add_source(target, record.role, record.id)

        await self._audit.log_event(
            AuditEventType.ENTITY_MERGED,
            {
                "source_id": str(record.id),
                "source_role": record.role.value,
                "match": rule.value,
                "entity_type": new_type.value,
                "filled_fields": sorted(shared_updates),
            },
            workspace_id=target.workspace_id,
            resource_type="business_entity",
            resource_id=target.id,
        )
        logger.debug(
            "entity_merged",
            entity_id=str(target.id),
            source_id=str(record.id),
            match=rule.value,
            entity_type=new_type.value,
        )

        return ConsolidationOutcome(
            source_id=record.id,
            role=record.role,
            action=ConsolidationAction.MERGED,
            match=rule,
            entity_id=target.id,
            entity_type=new_type,
        )


async def _main(workspace_id: UUID | None) -> ConsolidationReport:
    settings = get_settings()
    engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as session:
            return await ConsolidationEngine(session).run(workspace_id)
    finally:
        await close_db(engine)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Consolidate legacy customers and suppliers into business entities"
    )
    parser.add_argument("--workspace-id", type=UUID, default=None, help="Limit to one workspace")
    args = parser.parse_args()

    setup_logging()
    result = asyncio.run(_main(args.workspace_id))
    if result.failed:
        raise SystemExit(1)
