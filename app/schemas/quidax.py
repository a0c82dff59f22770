"""
Pydantic schemas for Quidax response payloads.

Upstream responses are validated here, at the network boundary, so that a
missing or malformed field fails fast instead of leaking ``None`` into fee
and amount arithmetic.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class QuidaxQuotation(BaseModel):
    """A swap quotation as issued by Quidax."""
    id: str
    from_currency: str
    to_currency: str
    quoted_price: Decimal
    quoted_currency: str | None = None
    from_amount: Decimal
    to_amount: Decimal
    confirmed: bool = False
    expires_at: datetime | None = None
    created_at: datetime | None = None


class QuidaxSwapTransaction(BaseModel):
    """Result of confirming a swap quotation."""
    id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    received_amount: Decimal
    execution_price: Decimal
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class QuidaxWallet(BaseModel):
    """One currency wallet of a Quidax sub-account."""
    id: str | None = None
    currency: str
    balance: Decimal
    locked: Decimal = Decimal("0")
