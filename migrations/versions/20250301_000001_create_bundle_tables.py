"""Create bundles and bundle_items tables.

Revision ID: 20250301_000001
Revises:
Create Date: 2025-03-01 00:00:01.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250301_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bundles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("shop", sa.String(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column(
            "status",
            sa.String(),
            nullable=False,
            server_default=sa.text("'ACTIVE'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "type IN ('SIMPLE','INFINITE_OPTIONS')",
            name="ck_bundles_type",
        ),
        sa.CheckConstraint(
            "status IN ('ACTIVE','INACTIVE','DRAFT')",
            name="ck_bundles_status",
        ),
    )
    op.create_index("ix_bundles_shop", "bundles", ["shop"])
    op.create_index("ix_bundles_shop_created_at", "bundles", ["shop", "created_at"])

    op.create_table(
        "bundle_items",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "bundle_id",
            sa.String(),
            sa.ForeignKey("bundles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.String(), nullable=False),
    )
    op.create_index("ix_bundle_items_bundle", "bundle_items", ["bundle_id"])


def downgrade() -> None:
    op.drop_index("ix_bundle_items_bundle", table_name="bundle_items")
    op.drop_table("bundle_items")
    op.drop_index("ix_bundles_shop_created_at", table_name="bundles")
    op.drop_index("ix_bundles_shop", table_name="bundles")
    op.drop_table("bundles")
