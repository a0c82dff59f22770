"""
Market rate endpoints.

Public: no authentication. Rates come from the cached Quidax ticker
board; a pair with no direct market is bridged through USDT or NGN.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.redis_client import get_redis
from app.schemas.rate import RateResponse, TickersResponse
from app.services.rate_service import RateService, RateUnavailable

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/rate", response_model=RateResponse)
async def get_rate(
    from_currency: str = Query(..., alias="from", min_length=1, examples=["USDT"]),
    to_currency: str = Query(..., alias="to", min_length=1, examples=["NGN"]),
    redis=Depends(get_redis),
):
    """
    Current rate for a currency pair (case-insensitive codes).

    Returns 503 when no usable rate exists; a missing rate is never
    reported as zero.
    """
    try:
        quote = await RateService(redis).get_rate(from_currency, to_currency)
    except RateUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Rate unavailable for {from_currency.upper()}/{to_currency.upper()}: {exc.reason}",
        )

    return RateResponse(
        from_currency=quote.from_currency,
        to_currency=quote.to_currency,
        rate=quote.rate,
        source=quote.source,
    )


@router.get("/tickers", response_model=TickersResponse)
async def get_tickers(redis=Depends(get_redis)):
    """Last price of every market on the exchange."""
    try:
        rates = await RateService(redis).get_all_rates()
    except RateUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Market data unavailable: {exc.reason}",
        )
    return TickersResponse(rates=rates)
