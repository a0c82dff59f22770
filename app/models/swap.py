"""
SwapTransaction model — record of one instant swap.

A row is written as ``pending`` when a quotation is issued and moves to
the upstream outcome when the user confirms, or to ``expired`` /
``cancelled`` when the quotation is abandoned.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Enum as SAEnum,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SwapStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Status transition map
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[SwapStatus, set[SwapStatus]] = {
    SwapStatus.PENDING: {
        SwapStatus.CONFIRMED,
        SwapStatus.EXPIRED,
        SwapStatus.CANCELLED,
        SwapStatus.FAILED,
    },
    SwapStatus.CONFIRMED: {
        SwapStatus.COMPLETED,
        SwapStatus.FAILED,
    },
    SwapStatus.COMPLETED: set(),
    SwapStatus.EXPIRED: set(),
    SwapStatus.CANCELLED: set(),
    SwapStatus.FAILED: set(),
}

# Upstream swap statuses and what they mean for a confirmed row
UPSTREAM_STATUS_MAP: dict[str, SwapStatus] = {
    "completed": SwapStatus.COMPLETED,
    "done": SwapStatus.COMPLETED,
    "success": SwapStatus.COMPLETED,
    "failed": SwapStatus.FAILED,
    "rejected": SwapStatus.FAILED,
}


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class SwapTransaction(Base):
    __tablename__ = "swap_transactions"
    __table_args__ = (
        CheckConstraint("from_amount > 0", name="ck_swap_transactions_from_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )

    # Owner
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.user_id"), index=True, nullable=False,
    )

    # Pair and amounts
    from_currency: Mapped[str] = mapped_column(String(10), nullable=False)
    to_currency: Mapped[str] = mapped_column(String(10), nullable=False)
    from_amount: Mapped[Decimal] = mapped_column(Numeric(precision=28, scale=8), nullable=False)
    to_amount: Mapped[Decimal | None] = mapped_column(Numeric(precision=28, scale=8))
    quoted_price: Mapped[Decimal | None] = mapped_column(Numeric(precision=28, scale=8))
    execution_price: Mapped[Decimal | None] = mapped_column(Numeric(precision=28, scale=8))

    # Upstream references
    quidax_quotation_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    quidax_swap_id: Mapped[str | None] = mapped_column(String(64))
    idempotency_key: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)

    # Status
    status: Mapped[SwapStatus] = mapped_column(
        SAEnum(SwapStatus, name="swapstatus", values_callable=lambda e: [m.value for m in e]),
        default=SwapStatus.PENDING,
    )
    failure_reason: Mapped[str | None] = mapped_column(String(255))

    # Lifecycle timestamps
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ------------------------------------------------------------------
    # Status transition validation
    # ------------------------------------------------------------------

    @staticmethod
    def is_valid_transition(from_status: SwapStatus, to_status: SwapStatus) -> bool:
        return to_status in VALID_TRANSITIONS.get(from_status, set())

    def transition_to(self, new_status: SwapStatus) -> None:
        """
        Transition to *new_status* if the move is valid.

        Raises ValueError if the transition is not allowed.
        Also sets lifecycle timestamps where applicable.
        """
        if not self.is_valid_transition(self.status, new_status):
            raise ValueError(
                f"Invalid transition: {self.status.value} -> {new_status.value}"
            )
        self.status = new_status

        now = datetime.now(timezone.utc)
        if new_status == SwapStatus.CONFIRMED:
            self.confirmed_at = now
        elif new_status == SwapStatus.COMPLETED:
            self.completed_at = now

    def apply_upstream_status(self, upstream_status: str) -> None:
        """Move a confirmed row to the outcome reported by the exchange."""
        outcome = UPSTREAM_STATUS_MAP.get((upstream_status or "").lower())
        if outcome is not None:
            self.transition_to(outcome)

    def __repr__(self) -> str:
        return (
            f"<SwapTransaction {self.quidax_quotation_id} "
            f"{self.from_amount} {self.from_currency}->{self.to_currency} "
            f"status={self.status.value if self.status else 'N/A'}>"
        )


# ---------------------------------------------------------------------------
# Auto-set Python-side defaults on construction
# ---------------------------------------------------------------------------


@event.listens_for(SwapTransaction, "init")
def _set_swap_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "status" not in kwargs:
        target.status = SwapStatus.PENDING
    if "idempotency_key" not in kwargs:
        target.idempotency_key = str(uuid.uuid4())
    if "created_at" not in kwargs:
        target.created_at = datetime.now(timezone.utc)
    if "updated_at" not in kwargs:
        target.updated_at = datetime.now(timezone.utc)
