"""
Amount conversion between the swap form's input denominations.

The user may type an amount in the source asset itself, in NGN, or in
USD. Quotes are always requested in source-asset units, so everything is
converted to that "base amount" first. Values are kept at full Decimal
precision here; rounding happens only for display.
"""

import enum
from decimal import Decimal, ROUND_HALF_UP

from app.swap.config import decimals_for


class Denomination(str, enum.Enum):
    CRYPTO = "CRYPTO"
    NGN = "NGN"
    USD = "USD"


def to_base_amount(
    amount: Decimal,
    denomination: Denomination,
    ngn_per_unit: Decimal,
    usd_ngn_rate: Decimal,
) -> Decimal:
    """
    Convert an entered amount into source-asset units.

    ``ngn_per_unit`` is the NGN price of one source unit and
    ``usd_ngn_rate`` the NGN price of one US dollar.
    """
    if denomination is Denomination.CRYPTO:
        return amount
    if denomination is Denomination.NGN:
        return from_ngn(amount, ngn_per_unit)
    return from_ngn(amount * usd_ngn_rate, ngn_per_unit)


def to_ngn(base_amount: Decimal, ngn_per_unit: Decimal) -> Decimal:
    """NGN value of *base_amount* source units."""
    return base_amount * ngn_per_unit


def from_ngn(ngn_amount: Decimal, ngn_per_unit: Decimal) -> Decimal:
    """Source units worth *ngn_amount* NGN."""
    if ngn_per_unit <= 0:
        raise ValueError("ngn_per_unit must be positive")
    return ngn_amount / ngn_per_unit


def to_usd(ngn_amount: Decimal, usd_ngn_rate: Decimal) -> Decimal:
    """USD value of an NGN amount, used for fee-tier lookup."""
    if usd_ngn_rate <= 0:
        raise ValueError("usd_ngn_rate must be positive")
    return ngn_amount / usd_ngn_rate


def format_amount(amount: Decimal, currency: str) -> str:
    """Render an amount with 2 places for fiat and 8 for crypto."""
    places = Decimal(1).scaleb(-decimals_for(currency))
    return str(amount.quantize(places, rounding=ROUND_HALF_UP))
