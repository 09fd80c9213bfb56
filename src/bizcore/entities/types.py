"""Business entity and consolidation type definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bizcore.db.models.business_entity import BusinessEntityType, Customer, Supplier

# Columns every party row carries; merged first-writer-wins
SHARED_FIELDS = (
    "name",
    "full_name",
    "status",
    "phone",
    "email",
    "website",
    "address",
    "district",
    "city",
    "postal_code",
    "country",
    "tax_office",
    "tax_number",
    "default_currency",
    "credit_limit",
    "payment_terms",
    "discount_rate",
    "notes",
    "created_by",
)

CUSTOMER_FIELDS = ("customer_code", "customer_category")

SUPPLIER_FIELDS = (
    "supplier_code",
    "lead_time_days",
    "minimum_order_quantity",
    "quality_rating",
    "delivery_rating",
    "defense_contractor",
    "export_license",
)

ROLE_FIELDS = {
    BusinessEntityType.CUSTOMER: CUSTOMER_FIELDS,
    BusinessEntityType.SUPPLIER: SUPPLIER_FIELDS,
}

CODE_FIELDS = {
    BusinessEntityType.CUSTOMER: "customer_code",
    BusinessEntityType.SUPPLIER: "supplier_code",
}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class BusinessEntityCreate(BaseModel):
    """Input for creating a business entity directly."""

    entity_type: BusinessEntityType
    name: str = Field(min_length=1, max_length=255)
    full_name: str | None = None
    status: str = Field(default="active", max_length=50)

    phone: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=255)
    website: str | None = Field(default=None, max_length=255)

    address: str | None = None
    district: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=10)
    country: str | None = Field(default=None, max_length=100)

    tax_office: str | None = Field(default=None, max_length=100)
    tax_number: str | None = Field(default=None, max_length=50)

    default_currency: str | None = Field(default=None, min_length=3, max_length=3)
    credit_limit: Decimal | None = Field(default=None, ge=0)
    payment_terms: str | None = Field(default=None, max_length=100)
    discount_rate: Decimal | None = Field(default=None, ge=0, le=100)
    notes: str | None = None

    customer_code: str | None = Field(default=None, max_length=50)
    customer_category: str | None = Field(default=None, max_length=50)

    supplier_code: str | None = Field(default=None, max_length=50)
    lead_time_days: int | None = Field(default=None, ge=0)
    minimum_order_quantity: int | None = Field(default=None, ge=0)
    quality_rating: Decimal | None = Field(default=None, ge=0, le=5)
    delivery_rating: Decimal | None = Field(default=None, ge=0, le=5)
    defense_contractor: bool = False
    export_license: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("tax_number", "customer_code", "supplier_code", "email", "phone")
    @classmethod
    def _strip_optional(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class BusinessEntityInfo(BaseModel):
    """A business entity as returned by the service and API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    company_id: UUID
    entity_type: BusinessEntityType
    name: str
    full_name: str | None = None
    status: str
    phone: str | None = None
    email: str | None = None
    city: str | None = None
    country: str | None = None
    tax_office: str | None = None
    tax_number: str | None = None
    customer_code: str | None = None
    customer_category: str | None = None
    supplier_code: str | None = None
    lead_time_days: int | None = None
    source_customer_id: UUID | None = None
    source_supplier_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class SourceRecord(BaseModel):
    """Snapshot of a legacy customer or supplier row.

    Holds plain values only, so the record stays usable after the session
    that loaded it has rolled back.
    """

    id: UUID
    role: BusinessEntityType
    workspace_id: UUID
    company_id: UUID
    shared: dict[str, Any] = Field(default_factory=dict)
    role_fields: dict[str, Any] = Field(default_factory=dict)

    @field_validator("role")
    @classmethod
    def _single_role(cls, value: BusinessEntityType) -> BusinessEntityType:
        if value is BusinessEntityType.BOTH:
            raise ValueError("a source record plays exactly one role")
        return value

    @property
    def name(self) -> str:
        return self.shared.get("name") or ""

    @property
    def tax_number(self) -> str | None:
        return _blank_to_none(self.shared.get("tax_number"))

    @property
    def code(self) -> str | None:
        return _blank_to_none(self.role_fields.get(CODE_FIELDS[self.role]))

    @classmethod
    def from_customer(cls, customer: Customer) -> "SourceRecord":
        return cls._snapshot(customer, BusinessEntityType.CUSTOMER)

    @classmethod
    def from_supplier(cls, supplier: Supplier) -> "SourceRecord":
        return cls._snapshot(supplier, BusinessEntityType.SUPPLIER)

    @classmethod
    def _snapshot(cls, row: Customer | Supplier, role: BusinessEntityType) -> "SourceRecord":
        return cls(
            id=row.id,
            role=role,
            workspace_id=row.workspace_id,
            company_id=row.company_id,
            shared={field: getattr(row, field) for field in SHARED_FIELDS},
            role_fields={field: getattr(row, field) for field in ROLE_FIELDS[role]},
        )


class ConsolidationAction(str, Enum):
    """What consolidation did with one source record."""

    CREATED = "created"  # New entity, id taken from the source record
    MERGED = "merged"  # Folded into an existing entity
    SKIPPED = "skipped"  # Already consolidated by an earlier run
    FAILED = "failed"


class MatchRule(str, Enum):
    """Which precedence rule selected the target entity."""

    PROVENANCE = "provenance"
    TAX_NUMBER = "tax_number"
    NAME_AND_COMPANY = "name_and_company"
    NONE = "none"


class ConsolidationOutcome(BaseModel):
    """Result of consolidating one source record."""

    source_id: UUID
    role: BusinessEntityType
    action: ConsolidationAction
    match: MatchRule = MatchRule.NONE
    entity_id: UUID | None = None
    entity_type: BusinessEntityType | None = None


class ConsolidationFailure(BaseModel):
    source_id: UUID
    role: BusinessEntityType
    error_type: str
    message: str


class EntityTypeSummary(BaseModel):
    """Distribution of live business entities by type."""

    customer_only: int = 0
    supplier_only: int = 0
    both: int = 0

    @property
    def total(self) -> int:
        return self.customer_only + self.supplier_only + self.both


class ConsolidationReport(BaseModel):
    """Totals of a consolidation run."""

    created: int = 0
    merged: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[ConsolidationFailure] = Field(default_factory=list)
    summary: EntityTypeSummary = Field(default_factory=EntityTypeSummary)

    @property
    def processed(self) -> int:
        return self.created + self.merged + self.skipped + self.failed

    def record(self, outcome: ConsolidationOutcome) -> None:
        if outcome.action is ConsolidationAction.CREATED:
            self.created += 1
        elif outcome.action is ConsolidationAction.MERGED:
            self.merged += 1
        elif outcome.action is ConsolidationAction.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
