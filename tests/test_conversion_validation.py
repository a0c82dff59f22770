"""Tests for amount conversion between denominations and swap form validation."""

from decimal import Decimal

import pytest

from app.services.fee_service import compute_fee
from app.swap.conversion import (
    Denomination,
    format_amount,
    from_ngn,
    to_base_amount,
    to_ngn,
    to_usd,
)
from app.swap.validation import (
    validate_after_fees,
    validate_amount,
    validate_balance,
    validate_swap_form,
    validate_trade_value,
)

USDT_NGN = Decimal("1585.23")
BTC_NGN = Decimal("103039950")


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class TestConversion:

    def test_crypto_amount_is_base_amount(self):
        assert to_base_amount(Decimal("100"), Denomination.CRYPTO, USDT_NGN, USDT_NGN) == Decimal("100")

    def test_ngn_amount(self):
        assert to_base_amount(Decimal("158523"), Denomination.NGN, USDT_NGN, USDT_NGN) == Decimal("100")
        assert to_base_amount(Decimal("1030399.50"), Denomination.NGN, BTC_NGN, USDT_NGN) == Decimal("0.01")

    def test_usd_amount(self):
        """USD input goes through the USD/NGN reference rate."""
        assert to_base_amount(Decimal("100"), Denomination.USD, USDT_NGN, USDT_NGN) == Decimal("100")
        base = to_base_amount(Decimal("650"), Denomination.USD, BTC_NGN, USDT_NGN)
        assert base == Decimal("650") * USDT_NGN / BTC_NGN

    def test_fiat_inputs_go_through_from_ngn(self):
        amount = Decimal("2500")
        assert to_base_amount(amount, Denomination.NGN, BTC_NGN, USDT_NGN) == from_ngn(amount, BTC_NGN)
        assert to_base_amount(amount, Denomination.USD, BTC_NGN, USDT_NGN) == from_ngn(amount * USDT_NGN, BTC_NGN)

    def test_ngn_and_usd_views(self):
        ngn = to_ngn(Decimal("100"), USDT_NGN)
        assert ngn == Decimal("158523.00")
        assert to_usd(ngn, USDT_NGN) == Decimal("100")

    @pytest.mark.parametrize("amount,rate", [
        ("100", "1585.23"),
        ("0.00012345", "103039950"),
        ("123456.789", "0.15"),
        ("1", "3"),
    ])
    def test_crypto_ngn_round_trip(self, amount, rate):
        """crypto -> NGN -> crypto at the same rate returns the original amount."""
        amount, rate = Decimal(amount), Decimal(rate)
        back = from_ngn(to_ngn(amount, rate), rate)
        assert abs(back - amount) < Decimal("1e-18")

    @pytest.mark.parametrize("denomination", [Denomination.NGN, Denomination.USD])
    def test_zero_rate_rejected(self, denomination):
        with pytest.raises(ValueError):
            to_base_amount(Decimal("100"), denomination, Decimal("0"), USDT_NGN)

    def test_zero_reference_rate_rejected(self):
        with pytest.raises(ValueError):
            to_usd(Decimal("100"), Decimal("0"))

    @pytest.mark.parametrize("amount,currency,expected", [
        ("158523", "NGN", "158523.00"),
        ("99.999", "USD", "100.00"),
        ("0.123456789", "BTC", "0.12345679"),
        ("100", "usdt", "100.00000000"),
    ])
    def test_format_amount(self, amount, currency, expected):
        assert format_amount(Decimal(amount), currency) == expected


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestSwapFormValidation:

    def test_valid_form(self):
        assert validate_swap_form("USDT", "NGN", "100") is None

    @pytest.mark.parametrize("from_currency,to_currency,amount,field,message", [
        ("", "NGN", "100", "from_currency", "Please select a source currency"),
        ("USDT", "", "100", "to_currency", "Please select a destination currency"),
        ("usdt", "USDT", "100", "to_currency", "Source and destination currencies must differ"),
        ("USDT", "NGN", "", "amount", "Please enter a valid amount"),
        ("USDT", "NGN", "0", "amount", "Please enter a valid amount"),
        ("USDT", "NGN", "-5", "amount", "Please enter a valid amount"),
        ("USDT", "NGN", "12abc", "amount", "Please enter a valid amount"),
    ])
    def test_problems(self, from_currency, to_currency, amount, field, message):
        error = validate_swap_form(from_currency, to_currency, amount)
        assert error.field == field
        assert error.message == message


class TestAmountLimits:

    def test_ngn_minimum(self):
        error = validate_amount(Decimal("999"), Denomination.NGN, "USDT")
        assert error.message == "Minimum amount is ₦1,000"

    def test_ngn_maximum(self):
        error = validate_amount(Decimal("10000001"), Denomination.NGN, "USDT")
        assert error.message == "Maximum amount is ₦10,000,000"

    def test_ngn_within_limits(self):
        assert validate_amount(Decimal("1000"), Denomination.NGN, "USDT") is None
        assert validate_amount(Decimal("10000000"), Denomination.NGN, "USDT") is None

    def test_crypto_minimum(self):
        error = validate_amount(Decimal("0.00005"), Denomination.CRYPTO, "btc")
        assert error.message == "Minimum amount is 0.0001 BTC"

    def test_crypto_maximum(self):
        error = validate_amount(Decimal("100001"), Denomination.CRYPTO, "USDT")
        assert error.message == "Maximum amount is 100000 USDT"

    def test_asset_without_limits(self):
        assert validate_amount(Decimal("0.000001"), Denomination.CRYPTO, "SOL") is None

    def test_usd_has_no_direct_limits(self):
        assert validate_amount(Decimal("0.5"), Denomination.USD, "USDT") is None

    def test_minimum_trade_value(self):
        assert validate_trade_value(Decimal("999.99")).message == "Minimum trade value is ₦1,000"
        assert validate_trade_value(Decimal("1000")) is None


class TestBalanceAndFees:

    def test_insufficient_balance(self):
        error = validate_balance(Decimal("101"), Decimal("100"), "usdt")
        assert error.message == "Insufficient USDT balance"

    def test_exact_balance_is_enough(self):
        assert validate_balance(Decimal("100"), Decimal("100"), "USDT") is None

    def test_unknown_balance_not_checked(self):
        assert validate_balance(Decimal("1000000"), None, "USDT") is None

    def test_amount_too_small_after_fees(self):
        """The fixed network fee can swallow a small trade."""
        fees = compute_fee(Decimal("500"), "USDT", reference_notional=Decimal("0.32"))
        assert fees.total_fee > Decimal("500")
        assert validate_after_fees(Decimal("500"), fees).message == "Amount too small after fees"

    def test_amount_covers_fees(self):
        fees = compute_fee(Decimal("158523"), "USDT", reference_notional=Decimal("100"))
        assert validate_after_fees(Decimal("158523"), fees) is None
