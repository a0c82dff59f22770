"""
Pydantic schemas for the fee-config endpoint.
"""

from pydantic import BaseModel


class TierBand(BaseModel):
    min: float
    max: float | None
    fee: float


class UserTier(BaseModel):
    trading_volume: float
    fee_percentage: float
    tier_level: str
    next_tier: TierBand | None
    volume_currency: str


class FeeConfigData(BaseModel):
    base_fees: dict[str, float]
    network_fees: dict[str, float]
    user_tier: UserTier
    referral_discount: float
    volume_tiers: dict[str, TierBand]
    currency: str


class FeeConfigResponse(BaseModel):
    status: str = "success"
    data: FeeConfigData
