"""
Wallet balance endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_current_user
from app.models.profile import UserProfile
from app.schemas.wallet import WalletBalance, WalletResponse
from app.services.wallet_service import WalletService, WalletUnavailable

router = APIRouter()


@router.get("", response_model=WalletResponse)
async def get_wallet(profile: UserProfile = Depends(get_current_user)):
    """The caller's wallets with a positive balance."""
    try:
        wallets = await WalletService().get_balances(profile.quidax_id)
    except WalletUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch wallet balances: {exc}",
        )
    return WalletResponse(
        wallets=[
            WalletBalance(currency=w.currency, balance=w.balance, locked=w.locked)
            for w in wallets
        ],
    )
