"""create swap_transactions table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, UUID

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    swapstatus = sa.Enum(
        "pending", "confirmed", "completed", "expired", "cancelled", "failed",
        name="swapstatus",
    )
    swapstatus.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "swap_transactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("user_profiles.user_id"), index=True, nullable=False,
        ),
        sa.Column("from_currency", sa.String(10), nullable=False),
        sa.Column("to_currency", sa.String(10), nullable=False),
        sa.Column("from_amount", sa.Numeric(28, 8), nullable=False),
        sa.Column("to_amount", sa.Numeric(28, 8), nullable=True),
        sa.Column("quoted_price", sa.Numeric(28, 8), nullable=True),
        sa.Column("execution_price", sa.Numeric(28, 8), nullable=True),
        sa.Column("quidax_quotation_id", sa.String(64), unique=True, index=True, nullable=False),
        sa.Column("quidax_swap_id", sa.String(64), nullable=True),
        sa.Column("idempotency_key", sa.String(36), unique=True, nullable=False),
        sa.Column(
            "status", ENUM(name="swapstatus", create_type=False),
            server_default="pending", nullable=False,
        ),
        sa.Column("failure_reason", sa.String(255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.CheckConstraint("from_amount > 0", name="ck_swap_transactions_from_positive"),
    )


def downgrade() -> None:
    op.drop_table("swap_transactions")
    sa.Enum(name="swapstatus").drop(op.get_bind(), checkfirst=True)
