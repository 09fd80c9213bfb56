"""Add business_entity_sources table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "business_entity_sources",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_role", sa.String(20), nullable=False),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["entity_id"], ["business_entities.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("source_role", "source_id", name="uq_business_entity_sources_source"),
    )
    op.create_index(
        "idx_business_entity_sources_entity", "business_entity_sources", ["entity_id"]
    )

    # Rows consolidated before this table existed
    op.execute(
        """
        INSERT INTO business_entity_sources (id, entity_id, source_role, source_id)
        SELECT gen_random_uuid(), id, 'customer', source_customer_id
        FROM business_entities WHERE source_customer_id IS NOT NULL
        UNION ALL
        SELECT gen_random_uuid(), id, 'supplier', source_supplier_id
        FROM business_entities WHERE source_supplier_id IS NOT NULL
        """
    )


def downgrade() -> None:
    op.drop_index("idx_business_entity_sources_entity", table_name="business_entity_sources")
    op.drop_table("business_entity_sources")
