"""Create bundle_reconciliations table.

Revision ID: 20250315_000002
Revises: 20250301_000001
Create Date: 2025-03-15 00:00:02.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250315_000002"
down_revision = "20250301_000001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bundle_reconciliations",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("shop", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_bundle_reconciliations_shop", "bundle_reconciliations", ["shop"]
    )


def downgrade() -> None:
    op.drop_index("ix_bundle_reconciliations_shop", table_name="bundle_reconciliations")
    op.drop_table("bundle_reconciliations")
