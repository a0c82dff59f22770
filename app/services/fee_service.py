"""
Fee calculator — volume tiers, referral discount, network fees.

The USD notional of a trade picks the volume tier; the tier's percentage
is then applied to the trade value in the fee currency (NGN for the swap
form). A flat per-asset network fee is added on top.

Tiers (USD notional):
    [0, 1K)       -> 4.0%  TIER_1
    [1K, 5K)      -> 3.5%  TIER_2
    [5K, 20K)     -> 3.0%  TIER_3
    [20K, 100K)   -> 2.8%  TIER_4
    [100K, +inf)  -> 2.5%  TIER_5
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from app.config import settings

CENT = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class VolumeTier:
    """A ``[min, max)`` notional band; ``max=None`` is unbounded above."""
    name: str
    min: Decimal
    max: Decimal | None
    fee_percentage: Decimal

    def contains(self, notional: Decimal) -> bool:
        return notional >= self.min and (self.max is None or notional < self.max)

    def as_dict(self) -> dict:
        return {
            "min": float(self.min),
            "max": float(self.max) if self.max is not None else None,
            "fee": float(self.fee_percentage),
        }


VOLUME_TIERS: tuple[VolumeTier, ...] = (
    VolumeTier("TIER_1", Decimal("0"), Decimal("1000"), Decimal("4.0")),
    VolumeTier("TIER_2", Decimal("1000"), Decimal("5000"), Decimal("3.5")),
    VolumeTier("TIER_3", Decimal("5000"), Decimal("20000"), Decimal("3.0")),
    VolumeTier("TIER_4", Decimal("20000"), Decimal("100000"), Decimal("2.8")),
    VolumeTier("TIER_5", Decimal("100000"), None, Decimal("2.5")),
)

# Flat network fee per asset, in the fee currency (NGN)
DEFAULT_NETWORK_FEES: dict[str, Decimal] = {
    "BTC": Decimal("2500"),
    "ETH": Decimal("1500"),
    "USDT": Decimal("500"),
    "USDC": Decimal("500"),
}


@dataclass(frozen=True)
class FeeBreakdown:
    """Trading cost of one trade. Derived, never persisted."""
    notional: Decimal
    reference_notional: Decimal
    tier: str | None
    fee_percentage: Decimal
    service_fee: Decimal
    platform_fee: Decimal
    network_fee: Decimal
    total_fee: Decimal

    @classmethod
    def zero(cls) -> "FeeBreakdown":
        return cls(
            notional=ZERO,
            reference_notional=ZERO,
            tier=None,
            fee_percentage=ZERO,
            service_fee=ZERO,
            platform_fee=ZERO,
            network_fee=ZERO,
            total_fee=ZERO,
        )


def parse_amount(value) -> Decimal | None:
    """Parse a user/upstream amount; None when empty, unparsable or not finite."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def select_tier(reference_notional: Decimal, tiers=VOLUME_TIERS) -> VolumeTier:
    """
    Return the single tier whose ``[min, max)`` interval holds the notional.

    A value exactly at a tier's ``max`` belongs to the next tier. Negative
    values fall into the first tier.
    """
    for tier in tiers:
        if tier.contains(reference_notional):
            return tier
    return tiers[0]


def next_tier(tier: VolumeTier, tiers=VOLUME_TIERS) -> VolumeTier | None:
    """The tier after *tier*, or None for the top tier."""
    index = tiers.index(tier)
    if index + 1 < len(tiers):
        return tiers[index + 1]
    return None


@dataclass
class FeeSchedule:
    """The one shared fee configuration every component reads."""
    tiers: tuple[VolumeTier, ...] = VOLUME_TIERS
    network_fees: dict[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_NETWORK_FEES))
    referral_discount: Decimal = settings.REFERRAL_DISCOUNT_PERCENT
    min_fee_percentage: Decimal = settings.MIN_FEE_PERCENTAGE
    platform_fee_share: Decimal = settings.PLATFORM_FEE_SHARE

    @classmethod
    def from_fee_config(cls, data: dict) -> "FeeSchedule":
        """Build a schedule from the ``data`` member of the fee-config payload."""
        schedule = cls()
        tiers = data.get("volume_tiers")
        if tiers:
            schedule.tiers = tuple(
                VolumeTier(
                    name,
                    Decimal(str(cfg["min"])),
                    Decimal(str(cfg["max"])) if cfg.get("max") is not None else None,
                    Decimal(str(cfg["fee"])),
                )
                for name, cfg in sorted(tiers.items(), key=lambda item: item[1]["min"])
            )
        for asset, fee in (data.get("network_fees") or {}).items():
            parsed = parse_amount(fee)
            if parsed is not None:
                schedule.network_fees[asset.upper()] = parsed
        if data.get("referral_discount") is not None:
            schedule.referral_discount = Decimal(str(data["referral_discount"]))
        return schedule

    def fee_percentage(self, tier: VolumeTier, referral: bool = False) -> Decimal:
        """
        Tier percentage, less the referral discount when applicable.

        The discount never takes the percentage below ``min_fee_percentage``
        (nor raises it above the tier's own rate).
        """
        pct = tier.fee_percentage
        if not referral:
            return pct
        floor = min(pct, self.min_fee_percentage)
        return max(pct - self.referral_discount, floor)

    def network_fee(self, asset: str | None) -> Decimal:
        if not asset:
            return ZERO
        return self.network_fees.get(asset.upper(), ZERO)

    def compute_fee(
        self,
        notional,
        asset: str | None,
        reference_notional=None,
        referral: bool = False,
    ) -> FeeBreakdown:
        """
        Fee breakdown for a trade worth *notional* (fee currency).

        *reference_notional* is the same trade in USD and only selects the
        tier; when omitted, *notional* is taken to already be in USD.
        Non-positive or unparsable notionals produce an all-zero breakdown.
        """
        amount = parse_amount(notional)
        if amount is None or amount <= 0:
            return FeeBreakdown.zero()

        reference = parse_amount(reference_notional) if reference_notional is not None else amount
        if reference is None:
            reference = amount

        tier = select_tier(reference, self.tiers)
        pct = self.fee_percentage(tier, referral)

        percentage_fee = (amount * pct / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
        platform_fee = (percentage_fee * self.platform_fee_share).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        service_fee = percentage_fee - platform_fee
        network_fee = self.network_fee(asset)

        return FeeBreakdown(
            notional=amount,
            reference_notional=reference,
            tier=tier.name,
            fee_percentage=pct,
            service_fee=service_fee,
            platform_fee=platform_fee,
            network_fee=network_fee,
            total_fee=service_fee + platform_fee + network_fee,
        )


default_schedule = FeeSchedule()


def compute_fee(notional, asset: str | None, reference_notional=None, referral: bool = False) -> FeeBreakdown:
    """Compute a fee breakdown against the default schedule."""
    return default_schedule.compute_fee(notional, asset, reference_notional, referral)


def build_fee_config(trading_volume: Decimal, schedule: FeeSchedule = default_schedule) -> dict:
    """
    Payload for the fee-config endpoint.

    ``trading_volume`` is the user's USD volume; it selects the current tier
    and the tier the user is working towards.
    """
    tier = select_tier(trading_volume, schedule.tiers)
    upcoming = next_tier(tier, schedule.tiers)
    return {
        "base_fees": {
            "platform": float(tier.fee_percentage),
            "total": float(tier.fee_percentage),
        },
        "network_fees": {asset: float(fee) for asset, fee in schedule.network_fees.items()},
        "user_tier": {
            "trading_volume": float(trading_volume),
            "fee_percentage": float(tier.fee_percentage),
            "tier_level": tier.name,
            "next_tier": upcoming.as_dict() if upcoming else None,
            "volume_currency": "USD",
        },
        "referral_discount": float(schedule.referral_discount),
        "volume_tiers": {t.name: t.as_dict() for t in schedule.tiers},
        "currency": "USD",
    }
