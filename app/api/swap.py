"""
Instant swap endpoints — estimate, quote, confirm, history.

Quote flow:
  1. Apply the swap form limits: trade size, minimum value, fees (422)
  2. Request a quotation from Quidax
  3. Cache it in Redis for the quote window (``swap_quote:{id}``)
  4. Record a PENDING swap_transactions row

Confirm flow:
  1. Look up the live quotation (410 if unknown or lapsed)
  2. Claim ``swap_confirm:{id}`` with SET NX (409 if already claimed)
  3. Confirm with Quidax and move the row to the upstream outcome
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_swap_gateway
from app.database import get_db
from app.models.profile import UserProfile
from app.models.swap import SwapStatus, SwapTransaction
from app.schemas.swap import (
    ConfirmResponse,
    EstimateResponse,
    FeeBreakdownSchema,
    QuotationRequest,
    QuotationResponse,
    SwapTransactionListResponse,
    SwapTransactionResponse,
)
from app.services.fee_service import default_schedule, parse_amount
from app.services.rate_service import RateUnavailable
from app.services.swap_service import (
    ConfirmFailed,
    DuplicateConfirmation,
    Quotation,
    QuotationExpired,
    QuoteRequestFailed,
)
from app.swap.conversion import Denomination, to_base_amount, to_ngn, to_usd
from app.swap.gateway import ServiceGateway
from app.swap.validation import validate_after_fees, validate_amount, validate_trade_value

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _quotation_response(quotation: Quotation) -> QuotationResponse:
    return QuotationResponse(
        id=quotation.id,
        from_currency=quotation.from_currency,
        to_currency=quotation.to_currency,
        from_amount=quotation.from_amount,
        quoted_price=quotation.quoted_price,
        to_amount=quotation.to_amount,
        issued_at=quotation.issued_at,
        expires_at=quotation.expires_at,
        seconds_remaining=quotation.seconds_remaining(),
        confirmable=quotation.confirmable,
    )


async def _value_trade(
    gateway: ServiceGateway,
    from_currency: str,
    amount: Decimal,
    denomination: Denomination,
    referral: bool,
):
    """Base amount, NGN value, USD value and fees for an entered amount."""
    try:
        ngn_per_unit = await gateway.get_rate(from_currency, "NGN")
    except RateUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Rate unavailable: {exc.reason}",
        )
    usd_ngn_rate = await gateway.get_usd_ngn_rate()

    base_amount = to_base_amount(amount, denomination, ngn_per_unit, usd_ngn_rate)
    ngn_value = to_ngn(base_amount, ngn_per_unit)
    usd_value = to_usd(ngn_value, usd_ngn_rate)
    fees = default_schedule.compute_fee(
        ngn_value, from_currency, reference_notional=usd_value, referral=referral,
    )
    return base_amount, ngn_value, usd_value, fees


async def _find_swap(db: AsyncSession, user_id: str, quotation_id: str) -> SwapTransaction | None:
    result = await db.execute(
        select(SwapTransaction).where(
            SwapTransaction.user_id == user_id,
            SwapTransaction.quidax_quotation_id == quotation_id,
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Estimate
# ---------------------------------------------------------------------------


@router.get("/estimate", response_model=EstimateResponse)
async def estimate_swap(
    from_currency: str = Query(..., min_length=1, examples=["USDT"]),
    to_currency: str = Query(..., min_length=1, examples=["NGN"]),
    amount: str = Query(..., examples=["100"]),
    denomination: Denomination = Query(Denomination.CRYPTO),
    profile: UserProfile = Depends(get_current_user),
    gateway: ServiceGateway = Depends(get_swap_gateway),
):
    """
    Indicative conversion and fee breakdown for an amount being typed.

    The USD value of the trade picks the fee tier; the fee is charged on
    the NGN value. Prices here are indicative only.
    """
    entered = parse_amount(amount)
    if entered is None or entered <= 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Please enter a valid amount",
        )

    try:
        rate = await gateway.get_rate(from_currency, to_currency)
    except RateUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Rate unavailable: {exc.reason}",
        )
    base_amount, ngn_value, usd_value, fees = await _value_trade(
        gateway, from_currency, entered, denomination, profile.has_referral,
    )

    return EstimateResponse(
        from_currency=from_currency.upper(),
        to_currency=to_currency.upper(),
        denomination=denomination,
        amount=entered,
        base_amount=base_amount,
        ngn_value=ngn_value,
        usd_value=usd_value,
        rate=rate,
        to_amount=base_amount * rate,
        receivable_ngn=max(ngn_value - fees.total_fee, Decimal("0")),
        fees=FeeBreakdownSchema.model_validate(fees),
    )


# ---------------------------------------------------------------------------
# Quotation
# ---------------------------------------------------------------------------


@router.post("/quotation", response_model=QuotationResponse, status_code=status.HTTP_201_CREATED)
async def create_quotation(
    payload: QuotationRequest,
    profile: UserProfile = Depends(get_current_user),
    gateway: ServiceGateway = Depends(get_swap_gateway),
    db: AsyncSession = Depends(get_db),
):
    """Issue a confirmable quotation, valid for the quote window."""
    if payload.from_currency == payload.to_currency:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Source and destination currencies must differ",
        )

    # Same limits the swap form applies before asking for a quote
    problem = validate_amount(payload.from_amount, Denomination.CRYPTO, payload.from_currency)
    if problem is None:
        _, ngn_value, _, fees = await _value_trade(
            gateway, payload.from_currency, payload.from_amount, Denomination.CRYPTO, profile.has_referral,
        )
        problem = validate_trade_value(ngn_value) or validate_after_fees(ngn_value, fees)
    if problem:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=problem.message,
        )

    try:
        quotation = await gateway.request_quote(
            payload.from_currency, payload.to_currency, str(payload.from_amount),
        )
    except QuoteRequestFailed as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to get quote: {exc.reason}",
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )

    db.add(SwapTransaction(
        user_id=profile.user_id,
        from_currency=quotation.from_currency,
        to_currency=quotation.to_currency,
        from_amount=quotation.from_amount,
        to_amount=quotation.to_amount,
        quoted_price=quotation.quoted_price,
        quidax_quotation_id=quotation.id,
        idempotency_key=quotation.idempotency_key,
        expires_at=quotation.expires_at,
    ))
    await db.flush()

    return _quotation_response(quotation)


@router.post("/quotation/temporary", response_model=QuotationResponse)
async def create_temporary_quotation(
    payload: QuotationRequest,
    gateway: ServiceGateway = Depends(get_swap_gateway),
):
    """Indicative quotation for display. Not stored and never confirmable."""
    try:
        quotation = await gateway.quotes.request_indicative_quote(
            gateway.user_id, payload.from_currency, payload.to_currency, str(payload.from_amount),
        )
    except QuoteRequestFailed as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to get quote: {exc.reason}",
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )
    return _quotation_response(quotation)


@router.post("/quotation/{quotation_id}/confirm", response_model=ConfirmResponse)
async def confirm_quotation(
    quotation_id: str,
    profile: UserProfile = Depends(get_current_user),
    gateway: ServiceGateway = Depends(get_swap_gateway),
    db: AsyncSession = Depends(get_db),
):
    """
    Execute a live quotation.

    Each quotation can be submitted once: a repeat is rejected with 409
    even if the first attempt failed upstream.
    """
    swap = await _find_swap(db, profile.user_id, quotation_id)
    quotation = await gateway.quotes.get_active_quote(gateway.user_id, quotation_id)

    if quotation is None:
        if swap is not None and swap.status == SwapStatus.PENDING:
            swap.transition_to(SwapStatus.EXPIRED)
            await db.commit()
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="Quotation has expired or does not exist. Request a new quote.",
        )

    try:
        result = await gateway.confirm(quotation)
    except QuotationExpired as exc:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=exc.reason)
    except DuplicateConfirmation as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.reason)
    except ConfirmFailed as exc:
        if swap is not None and swap.status == SwapStatus.PENDING:
            swap.transition_to(SwapStatus.FAILED)
            swap.failure_reason = exc.reason[:255]
            await db.commit()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to confirm swap: {exc.reason}",
        )

    if swap is not None and swap.status == SwapStatus.PENDING:
        swap.transition_to(SwapStatus.CONFIRMED)
        swap.quidax_swap_id = result.id
        swap.execution_price = result.execution_price
        swap.to_amount = result.received_amount
        swap.apply_upstream_status(result.status)
    elif swap is None:
        logger.warning("Confirmed quotation %s has no swap record", quotation_id)

    return ConfirmResponse(
        swap_id=result.id,
        quotation_id=result.quotation_id,
        from_currency=result.from_currency,
        to_currency=result.to_currency,
        from_amount=result.from_amount,
        received_amount=result.received_amount,
        execution_price=result.execution_price,
        status=result.status,
        idempotency_key=result.idempotency_key,
    )


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/transactions", response_model=SwapTransactionListResponse)
async def list_swaps(
    profile: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's swaps, newest first."""
    result = await db.execute(
        select(SwapTransaction)
        .where(SwapTransaction.user_id == profile.user_id)
        .order_by(SwapTransaction.created_at.desc())
    )
    swaps = result.scalars().all()
    return SwapTransactionListResponse(
        items=[SwapTransactionResponse.model_validate(s) for s in swaps],
        total=len(swaps),
    )
