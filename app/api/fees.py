"""
Fee configuration endpoint.

Serves the one shared fee schedule (volume tiers, network fees, referral
discount) together with the caller's current tier. Anonymous callers are
placed in the first tier.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends

from app.api.deps import get_optional_user
from app.models.profile import UserProfile
from app.schemas.fees import FeeConfigResponse
from app.services.fee_service import build_fee_config

router = APIRouter()


@router.get("/fees", response_model=FeeConfigResponse)
async def get_fee_config(profile: UserProfile | None = Depends(get_optional_user)):
    trading_volume = profile.trading_volume if profile is not None else Decimal("0")
    return FeeConfigResponse(status="success", data=build_fee_config(trading_volume or Decimal("0")))
