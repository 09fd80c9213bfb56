"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _party_columns() -> list[sa.Column]:
    """Columns shared by business_entities, customers and suppliers."""
    return [
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("full_name", sa.Text, nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("district", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(10), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("tax_office", sa.String(100), nullable=True),
        sa.Column("tax_number", sa.String(50), nullable=True),
        sa.Column("default_currency", sa.String(3), nullable=True),
        sa.Column("credit_limit", sa.Numeric(15, 2), nullable=True),
        sa.Column("payment_terms", sa.String(100), nullable=True),
        sa.Column("discount_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        _uuid("created_by", nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _customer_columns() -> list[sa.Column]:
    return [
        sa.Column("customer_code", sa.String(50), nullable=True),
        sa.Column("customer_category", sa.String(50), nullable=True),
    ]


def _supplier_columns() -> list[sa.Column]:
    return [
        sa.Column("supplier_code", sa.String(50), nullable=True),
        sa.Column("lead_time_days", sa.Integer, nullable=True),
        sa.Column("minimum_order_quantity", sa.Integer, nullable=True),
        sa.Column("quality_rating", sa.Numeric(3, 2), nullable=True),
        sa.Column("delivery_rating", sa.Numeric(3, 2), nullable=True),
        sa.Column("defense_contractor", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("export_license", sa.Boolean, nullable=False, server_default=sa.false()),
    ]


def _tenant_columns() -> list[sa.Column]:
    return [
        _uuid("workspace_id", nullable=False),
        _uuid("company_id", nullable=False),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    ]


def upgrade() -> None:
    # Identity
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("email_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "user_sessions",
        _uuid("id", primary_key=True),
        sa.Column("token", sa.String(128), nullable=False, unique=True),
        _uuid("user_id", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_user_sessions_user", "user_sessions", ["user_id"])

    # Tenancy
    op.create_table(
        "workspaces",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        _uuid("owner_id", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
    )

    op.create_table(
        "companies",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "workspace_companies",
        _uuid("id", primary_key=True),
        _uuid("workspace_id", nullable=False),
        _uuid("company_id", nullable=False),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("company_id", name="uq_workspace_companies_company"),
    )
    op.create_index("idx_workspace_companies_workspace", "workspace_companies", ["workspace_id"])

    op.create_table(
        "workspace_members",
        _uuid("id", primary_key=True),
        _uuid("workspace_id", nullable=False),
        _uuid("user_id", nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("permissions", postgresql.JSONB, nullable=True),
        _uuid("invited_by", nullable=True),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "workspace_id", "user_id", name="uq_workspace_members_workspace_user"
        ),
    )
    op.create_index("idx_workspace_members_user", "workspace_members", ["user_id"])

    # Invitations
    op.create_table(
        "invitations",
        _uuid("id", primary_key=True),
        sa.Column("token", sa.String(128), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        _uuid("workspace_id", nullable=False),
        _uuid("company_id", nullable=True),
        _uuid("invited_by", nullable=False),
        sa.Column("status", sa.String(40), nullable=False, server_default="pending"),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("accepted_by", nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_invitations_workspace_email_status",
        "invitations",
        ["workspace_id", "email", "status"],
    )
    op.create_index(
        "idx_invitations_company_email_status",
        "invitations",
        ["company_id", "email", "status"],
    )
    op.create_index("idx_invitations_status", "invitations", ["status"])

    # Legacy party tables, read by the consolidation engine
    op.create_table(
        "customers",
        _uuid("id", primary_key=True),
        *_tenant_columns(),
        *_party_columns(),
        *_customer_columns(),
        *_timestamps(),
    )
    op.create_index("idx_customers_workspace_company", "customers", ["workspace_id", "company_id"])

    op.create_table(
        "suppliers",
        _uuid("id", primary_key=True),
        *_tenant_columns(),
        *_party_columns(),
        *_supplier_columns(),
        *_timestamps(),
    )
    op.create_index("idx_suppliers_workspace_company", "suppliers", ["workspace_id", "company_id"])

    # Unified business entities
    op.create_table(
        "business_entities",
        _uuid("id", primary_key=True),
        *_tenant_columns(),
        sa.Column("entity_type", sa.String(20), nullable=False),
        *_party_columns(),
        *_customer_columns(),
        *_supplier_columns(),
        _uuid("source_customer_id", nullable=True),
        _uuid("source_supplier_id", nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "idx_business_entities_workspace_company",
        "business_entities",
        ["workspace_id", "company_id"],
    )
    op.create_index(
        "idx_business_entities_workspace_tax", "business_entities", ["workspace_id", "tax_number"]
    )
    op.create_index("idx_business_entities_entity_type", "business_entities", ["entity_type"])
    op.create_index("idx_business_entities_customer_code", "business_entities", ["customer_code"])
    op.create_index("idx_business_entities_supplier_code", "business_entities", ["supplier_code"])
    op.create_index(
        "idx_business_entities_source_customer", "business_entities", ["source_customer_id"]
    )
    op.create_index(
        "idx_business_entities_source_supplier", "business_entities", ["source_supplier_id"]
    )

    # Audit
    op.create_table(
        "audit_events",
        _uuid("audit_id", primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False, server_default="info"),
        _uuid("workspace_id", nullable=True),
        _uuid("user_id", nullable=True),
        _uuid("correlation_id", nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("event_data", postgresql.JSONB, nullable=False),
        sa.Column("actor_type", sa.String(20), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_audit_workspace", "audit_events", ["workspace_id"])
    op.create_index("idx_audit_correlation", "audit_events", ["correlation_id"])
    op.create_index("idx_audit_event_type", "audit_events", ["event_type"])
    op.create_index("idx_audit_created", "audit_events", ["created_at"])
    op.create_index("idx_audit_resource", "audit_events", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("business_entities")
    op.drop_table("suppliers")
    op.drop_table("customers")
    op.drop_table("invitations")
    op.drop_table("workspace_members")
    op.drop_table("workspace_companies")
    op.drop_table("companies")
    op.drop_table("workspaces")
    op.drop_table("user_sessions")
    op.drop_table("users")
