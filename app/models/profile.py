"""
UserProfile model — the exchange-facing side of an authenticated user.

Accounts live with the auth provider; this table maps a user id onto the
Quidax sub-account that trades for them, plus the figures used for fee
tiering.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, event
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    # Auth-provider user id (JWT ``sub``)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Quidax sub-account
    quidax_id: Mapped[str | None] = mapped_column(String(64), unique=True, index=True)

    # 30-day trading volume in USD, used for fee tiering
    trading_volume: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), default=Decimal("0"),
    )

    kyc_tier: Mapped[int] = mapped_column(Integer, default=0)
    referred_by: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def has_referral(self) -> bool:
        return bool(self.referred_by)

    def __repr__(self) -> str:
        return f"<UserProfile {self.user_id} quidax={self.quidax_id} tier={self.kyc_tier}>"


@event.listens_for(UserProfile, "init")
def _set_profile_defaults(target, args, kwargs):
    if "trading_volume" not in kwargs:
        target.trading_volume = Decimal("0")
    if "kyc_tier" not in kwargs:
        target.kyc_tier = 0
    if "created_at" not in kwargs:
        target.created_at = datetime.now(timezone.utc)
    if "updated_at" not in kwargs:
        target.updated_at = datetime.now(timezone.utc)
