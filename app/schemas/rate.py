"""
Pydantic schemas for market rates.
"""

from decimal import Decimal

from pydantic import BaseModel


class RateResponse(BaseModel):
    """A resolved rate: destination units per one source unit."""
    from_currency: str
    to_currency: str
    rate: Decimal
    source: str


class TickersResponse(BaseModel):
    """Last traded price of every market, keyed by market name."""
    rates: dict[str, Decimal]
