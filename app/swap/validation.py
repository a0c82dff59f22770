"""
Swap form validation.

Validators return a SwapValidationError value (or None) instead of
raising: problems are shown next to the form field and never reach the
network.
"""

from dataclasses import dataclass
from decimal import Decimal

from app.services.fee_service import FeeBreakdown, parse_amount
from app.swap.config import MAX_CRYPTO, MAX_NGN, MIN_CRYPTO, MIN_NGN, MIN_TRADE_VALUE_NGN
from app.swap.conversion import Denomination


@dataclass(frozen=True)
class SwapValidationError:
    """An inline form error."""
    field: str
    message: str


def validate_swap_form(from_currency: str, to_currency: str, amount: str) -> SwapValidationError | None:
    if not from_currency:
        return SwapValidationError("from_currency", "Please select a source currency")
    if not to_currency:
        return SwapValidationError("to_currency", "Please select a destination currency")
    if from_currency.upper() == to_currency.upper():
        return SwapValidationError("to_currency", "Source and destination currencies must differ")
    parsed = parse_amount(amount)
    if parsed is None or parsed <= 0:
        return SwapValidationError("amount", "Please enter a valid amount")
    return None


def validate_amount(
    amount: Decimal, denomination: Denomination, from_currency: str,
) -> SwapValidationError | None:
    """Per-denomination trade-size limits."""
    if denomination is Denomination.NGN:
        if amount < MIN_NGN:
            return SwapValidationError("amount", f"Minimum amount is ₦{MIN_NGN:,.0f}")
        if amount > MAX_NGN:
            return SwapValidationError("amount", f"Maximum amount is ₦{MAX_NGN:,.0f}")
    elif denomination is Denomination.CRYPTO:
        currency = from_currency.upper()
        minimum = MIN_CRYPTO.get(currency)
        if minimum is not None and amount < minimum:
            return SwapValidationError("amount", f"Minimum amount is {minimum} {currency}")
        maximum = MAX_CRYPTO.get(currency)
        if maximum is not None and amount > maximum:
            return SwapValidationError("amount", f"Maximum amount is {maximum} {currency}")
    return None


def validate_trade_value(ngn_value: Decimal) -> SwapValidationError | None:
    if ngn_value < MIN_TRADE_VALUE_NGN:
        return SwapValidationError("amount", f"Minimum trade value is ₦{MIN_TRADE_VALUE_NGN:,.0f}")
    return None


def validate_balance(
    base_amount: Decimal, balance: Decimal | None, currency: str,
) -> SwapValidationError | None:
    """The source wallet must cover the trade. Unknown balances are not checked."""
    if balance is not None and base_amount > balance:
        return SwapValidationError("amount", f"Insufficient {currency.upper()} balance")
    return None


def validate_after_fees(ngn_value: Decimal, fees: FeeBreakdown) -> SwapValidationError | None:
    """Reject trades whose fees would leave nothing to receive."""
    if ngn_value - fees.total_fee <= 0:
        return SwapValidationError("amount", "Amount too small after fees")
    return None
