"""Create the per-shop key/value store

Revision ID: 20261016_app_store
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_app_store"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "app_store",
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("owner_id", "key"),
    )


def downgrade():
    op.drop_table("app_store")
