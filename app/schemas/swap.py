"""
Pydantic schemas for swap estimates, quotations, and confirmations.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.swap import SwapStatus
from app.swap.conversion import Denomination


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------


class FeeBreakdownSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    notional: Decimal
    reference_notional: Decimal
    tier: str | None
    fee_percentage: Decimal
    service_fee: Decimal
    platform_fee: Decimal
    network_fee: Decimal
    total_fee: Decimal


class EstimateResponse(BaseModel):
    """Indicative conversion and fees for the amount being typed."""
    from_currency: str
    to_currency: str
    denomination: Denomination
    amount: Decimal
    base_amount: Decimal
    ngn_value: Decimal
    usd_value: Decimal
    rate: Decimal
    to_amount: Decimal
    receivable_ngn: Decimal
    fees: FeeBreakdownSchema


# ---------------------------------------------------------------------------
# Quotation
# ---------------------------------------------------------------------------


class QuotationRequest(BaseModel):
    """Schema for requesting a swap quotation."""
    from_currency: str = Field(..., min_length=2, max_length=10, examples=["USDT"])
    to_currency: str = Field(..., min_length=2, max_length=10, examples=["NGN"])
    from_amount: Decimal = Field(..., gt=0, examples=["100"])

    @field_validator("from_currency", "to_currency")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class QuotationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    quoted_price: Decimal
    to_amount: Decimal
    issued_at: datetime
    expires_at: datetime
    seconds_remaining: int
    confirmable: bool


class ConfirmResponse(BaseModel):
    """Outcome of a confirmed swap."""
    swap_id: str
    quotation_id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    received_amount: Decimal
    execution_price: Decimal
    status: str
    idempotency_key: str


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class SwapTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal | None
    quoted_price: Decimal | None
    execution_price: Decimal | None
    quidax_quotation_id: str
    quidax_swap_id: str | None
    status: SwapStatus
    failure_reason: str | None
    created_at: datetime


class SwapTransactionListResponse(BaseModel):
    items: list[SwapTransactionResponse]
    total: int
