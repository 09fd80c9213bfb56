"""Business entity models.

``BusinessEntity`` is the unified party table: one row per counterparty,
playing the customer role, the supplier role or both. ``Customer`` and
``Supplier`` are the legacy per-role tables it replaces; the consolidation
engine reads them and writes business entities.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin, UTCDateTime, utcnow


class BusinessEntityType(str, Enum):
    """Roles a business entity plays."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    BOTH = "both"

    @property
    def roles(self) -> frozenset["BusinessEntityType"]:
        """The single roles this type covers (BOTH covers customer and supplier)."""
        if self is BusinessEntityType.BOTH:
            return frozenset({BusinessEntityType.CUSTOMER, BusinessEntityType.SUPPLIER})
        return frozenset({self})

    @classmethod
    def from_roles(cls, roles: frozenset["BusinessEntityType"]) -> "BusinessEntityType":
        """Collapse a set of single roles back to a type."""
        if roles >= {cls.CUSTOMER, cls.SUPPLIER}:
            return cls.BOTH
        if cls.SUPPLIER in roles:
            return cls.SUPPLIER
        return cls.CUSTOMER


class PartyFieldsMixin:
    """Columns shared by business entities and the legacy customer/supplier tables."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")

    # Contact
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Address
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Legal
    tax_office: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tax_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Financial
    default_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    credit_limit: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(100), nullable=True)
    discount_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


class SupplierFieldsMixin:
    """Columns only meaningful for the supplier role."""

    supplier_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lead_time_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_order_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quality_rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    delivery_rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    defense_contractor: Mapped[bool] = mapped_column(default=False, nullable=False)
    export_license: Mapped[bool] = mapped_column(default=False, nullable=False)


class CustomerFieldsMixin:
    """Columns only meaningful for the customer role."""

    customer_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_category: Mapped[str | None] = mapped_column(String(50), nullable=True)


class BusinessEntity(Base, PartyFieldsMixin, CustomerFieldsMixin, SupplierFieldsMixin, TimestampMixin):
    """A counterparty of a company, acting as customer, supplier or both.

    Uniqueness rules are enforced by the business entity service, ignoring
    soft-deleted rows:
    - tax_number is unique across the workspace
    - customer_code is unique per company among customer-role entities
    - supplier_code is unique per company among supplier-role entities
    """

    __tablename__ = "business_entities"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    workspace_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Consolidation provenance
    source_customer_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    source_supplier_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)

    __table_args__ = (
        Index("idx_business_entities_workspace_company", "workspace_id", "company_id"),
        Index("idx_business_entities_workspace_tax", "workspace_id", "tax_number"),
        Index("idx_business_entities_entity_type", "entity_type"),
        Index("idx_business_entities_customer_code", "customer_code"),
        Index("idx_business_entities_supplier_code", "supplier_code"),
        Index("idx_business_entities_source_customer", "source_customer_id"),
        Index("idx_business_entities_source_supplier", "source_supplier_id"),
    )

    @property
    def roles(self) -> frozenset[BusinessEntityType]:
        return BusinessEntityType(self.entity_type).roles

    def __repr__(self) -> str:
        return f"<BusinessEntity(id={self.id}, name={self.name}, type={self.entity_type})>"


class BusinessEntitySource(Base):
    """One legacy customer or supplier row consolidated into a business entity.

    An entity merged from several rows of the same role keeps only the first
    in ``source_customer_id`` / ``source_supplier_id``; this table records
    all of them, so a later run can tell every one of them apart.
    """

    __tablename__ = "business_entity_sources"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    entity_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("business_entities.id", ondelete="CASCADE"), nullable=False
    )
    source_role: Mapped[str] = mapped_column(String(20), nullable=False)
    source_id: Mapped[UUID] = mapped_column(PortableUUID(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("source_role", "source_id", name="uq_business_entity_sources_source"),
        Index("idx_business_entity_sources_entity", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<BusinessEntitySource({self.source_role}={self.source_id} -> {self.entity_id})>"


class Customer(Base, PartyFieldsMixin, CustomerFieldsMixin, TimestampMixin):
    """Legacy customer row, source for consolidation."""

    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    workspace_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (Index("idx_customers_workspace_company", "workspace_id", "company_id"),)

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name})>"


class Supplier(Base, PartyFieldsMixin, SupplierFieldsMixin, TimestampMixin):
    """Legacy supplier row, source for consolidation."""

    __tablename__ = "suppliers"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    workspace_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (Index("idx_suppliers_workspace_company", "workspace_id", "company_id"),)

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name={self.name})>"
