"""create user_profiles table

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("quidax_id", sa.String(64), unique=True, index=True, nullable=True),
        sa.Column("trading_volume", sa.Numeric(18, 2), server_default="0", nullable=False),
        sa.Column("kyc_tier", sa.Integer, server_default="0", nullable=False),
        sa.Column("referred_by", sa.String(64), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("user_profiles")
