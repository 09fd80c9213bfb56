"""Business entities and the legacy customer/supplier consolidation."""

from bizcore.entities.consolidation import ConsolidationEngine
from bizcore.entities.service import BusinessEntityService, ensure_unique
from bizcore.entities.types import (
    BusinessEntityCreate,
    BusinessEntityInfo,
    ConsolidationAction,
    ConsolidationFailure,
    ConsolidationOutcome,
    ConsolidationReport,
    EntityTypeSummary,
    MatchRule,
    SourceRecord,
)

__all__ = [
    "BusinessEntityCreate",
    "BusinessEntityInfo",
    "BusinessEntityService",
    "ConsolidationAction",
    "ConsolidationEngine",
    "ConsolidationFailure",
    "ConsolidationOutcome",
    "ConsolidationReport",
    "EntityTypeSummary",
    "MatchRule",
    "SourceRecord",
    "ensure_unique",
]
