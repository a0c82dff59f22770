"""
Swap form controller: the end-to-end instant swap flow.

amount entry -> denomination conversion -> quote -> preview -> confirm / cancel

Continuously (as the user types): indicative rate and fee estimate.
On explicit action: quotation request, countdown, trade confirmation,
balance refresh, reset.

Errors never escape the controller. Validation problems land in
``error`` (inline, no network call); network problems become entries in
``notices`` (toasts). Responses that arrive after the form was reset are
ignored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable

from app.config import settings
from app.services.fee_service import FeeBreakdown, FeeSchedule, default_schedule, parse_amount
from app.services.rate_service import RateUnavailable
from app.services.swap_service import (
    ConfirmFailed,
    Quotation,
    QuotationExpired,
    QuoteRequestFailed,
    TradeResult,
)
from app.services.wallet_service import WalletUnavailable
from app.swap.config import BALANCE_REFRESH_INTERVAL_SECONDS
from app.swap.conversion import Denomination, format_amount, to_base_amount, to_ngn, to_usd
from app.swap.countdown import QuoteCountdown
from app.swap.gateway import SwapGateway
from app.swap.polling import Poller, RatePoller
from app.swap.validation import (
    SwapValidationError,
    validate_after_fees,
    validate_amount,
    validate_balance,
    validate_swap_form,
    validate_trade_value,
)

logger = logging.getLogger(__name__)

QUOTE_EXPIRED_MESSAGE = "Quote expired. Request a new quote to continue."


# ---------------------------------------------------------------------------
# State & view objects
# ---------------------------------------------------------------------------


@dataclass
class SwapFormState:
    """What the user has entered, plus the live quotation if there is one."""
    from_currency: str = ""
    to_currency: str = ""
    amount: str = ""
    denomination: Denomination = Denomination.CRYPTO
    quotation: Quotation | None = None


@dataclass(frozen=True)
class Notice:
    level: str  # "info" | "success" | "error"
    message: str


@dataclass(frozen=True)
class SwapEstimate:
    """Indicative figures shown while the user types."""
    base_amount: Decimal
    ngn_value: Decimal
    usd_value: Decimal
    rate: Decimal | None
    indicative_to_amount: Decimal | None
    fees: FeeBreakdown
    stale: bool


@dataclass(frozen=True)
class TradePreview:
    """Confirmation step; prices come from the quotation, not the polled rate."""
    quotation_id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    quoted_price: Decimal
    ngn_value: Decimal
    fees: FeeBreakdown
    seconds_remaining: int
    can_confirm: bool


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class SwapFormController:
    """
    Drives one swap form.

    Call ``open()`` when the form is shown and ``close()`` when it goes
    away; in between, feed it user input and await its actions. With
    ``auto_tick=False`` nothing runs in the background and the caller
    advances the countdown via ``countdown.tick()``.
    """

    def __init__(
        self,
        gateway: SwapGateway,
        fee_schedule: FeeSchedule | None = None,
        countdown_seconds: int | None = None,
        initial_from_currency: str = "",
        referral: bool = False,
        auto_tick: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.fee_schedule = fee_schedule or default_schedule
        self.referral = referral
        self.auto_tick = auto_tick
        self._sleep = sleep
        self._initial_from_currency = initial_from_currency.upper()

        self.state = SwapFormState(from_currency=self._initial_from_currency)
        self.countdown = QuoteCountdown(countdown_seconds, on_expired=self._on_quote_expired)
        self.rate = RatePoller(gateway.get_rate, on_error=self._on_rate_error, sleep=sleep)
        self.ngn_price = RatePoller(gateway.get_rate, on_error=self._on_rate_error, sleep=sleep)
        self.balance_poller = Poller(BALANCE_REFRESH_INTERVAL_SECONDS, self.refresh_balances, sleep=sleep)

        self.usd_ngn_rate: Decimal = settings.DEFAULT_USD_NGN_RATE
        self.balances: dict[str, Decimal] | None = None
        self.balances_visible = True
        self.error: SwapValidationError | None = None
        self.notices: list[Notice] = []
        self.is_loading = False
        self.is_confirming = False
        self._generation = 0

    # --- Lifecycle ---

    async def open(self) -> None:
        """Load balances and reference rates, then start the refresh timers."""
        await self.refresh_balances()
        self.usd_ngn_rate = await self.gateway.get_usd_ngn_rate()
        await self._select_pair()
        if self.auto_tick:
            self.rate.start()
            self.ngn_price.start()
            self.balance_poller.start()

    async def close(self) -> None:
        """Tear down timers and forget all form state."""
        await self.rate.stop()
        await self.ngn_price.stop()
        await self.balance_poller.stop()
        await self.countdown.close()
        self.reset()

    # --- Input ---

    async def select_currencies(self, from_currency: str | None = None, to_currency: str | None = None) -> None:
        """Change the pair. A live quotation for the old pair is dropped."""
        if from_currency is not None:
            self.state.from_currency = from_currency.upper()
        if to_currency is not None:
            self.state.to_currency = to_currency.upper()
        self.error = None
        self._drop_quotation()
        await self._select_pair()

    async def _select_pair(self) -> None:
        src, dst = self.state.from_currency, self.state.to_currency
        if src:
            await self.ngn_price.set_pair(src, "NGN")
        if src and dst:
            await self.rate.set_pair(src, dst)

    def set_amount(self, value: str) -> None:
        self.state.amount = value
        self.error = None
        self._drop_quotation()

    def set_denomination(self, denomination: Denomination) -> None:
        """Switch the input denomination; the typed amount no longer applies."""
        self.state.denomination = Denomination(denomination)
        self.state.amount = ""
        self.error = None
        self._drop_quotation()

    def set_max_amount(self) -> None:
        """Fill in the whole source balance, in the current denomination."""
        if not self.balances:
            return
        src = self.state.from_currency
        denomination = self.state.denomination
        if denomination is Denomination.NGN:
            amount = self.balances.get("NGN", Decimal("0"))
        else:
            amount = self.balances.get(src, Decimal("0"))
            if denomination is Denomination.USD:
                if self.ngn_price.rate is None:
                    return
                amount = to_usd(to_ngn(amount, self.ngn_price.rate), self.usd_ngn_rate)
        currency = "NGN" if denomination is Denomination.NGN else (
            "USD" if denomination is Denomination.USD else src
        )
        self.set_amount(format_amount(amount, currency))

    # --- Derived figures ---

    def base_amount(self) -> Decimal | None:
        """The entered amount in source-asset units, or None if not computable yet."""
        amount = parse_amount(self.state.amount)
        if amount is None or amount <= 0:
            return None
        if self.state.denomination is Denomination.CRYPTO:
            return amount
        if self.ngn_price.rate is None:
            return None
        return to_base_amount(amount, self.state.denomination, self.ngn_price.rate, self.usd_ngn_rate)

    def estimate(self) -> SwapEstimate | None:
        """Indicative conversion and fee breakdown for the current input."""
        base = self.base_amount()
        if base is None or self.ngn_price.rate is None:
            return None
        ngn_value = to_ngn(base, self.ngn_price.rate)
        usd_value = to_usd(ngn_value, self.usd_ngn_rate)
        fees = self.fee_schedule.compute_fee(
            ngn_value, self.state.from_currency, reference_notional=usd_value, referral=self.referral,
        )
        rate = self.rate.rate
        return SwapEstimate(
            base_amount=base,
            ngn_value=ngn_value,
            usd_value=usd_value,
            rate=rate,
            indicative_to_amount=base * rate if rate is not None else None,
            fees=fees,
            stale=self.rate.stale or self.ngn_price.stale,
        )

    def validate(self) -> SwapValidationError | None:
        """First problem with the current input, or None if a quote may be requested."""
        s = self.state
        problem = validate_swap_form(s.from_currency, s.to_currency, s.amount)
        if problem:
            return problem

        entered = parse_amount(s.amount)
        problem = validate_amount(entered, s.denomination, s.from_currency)
        if problem:
            return problem

        estimate = self.estimate()
        if estimate is None:
            return SwapValidationError("amount", "Market rate unavailable. Please try again shortly.")

        problem = validate_trade_value(estimate.ngn_value)
        if problem:
            return problem

        if self.balances is not None:
            problem = validate_balance(
                estimate.base_amount, self.balances.get(s.from_currency, Decimal("0")), s.from_currency,
            )
            if problem:
                return problem

        return validate_after_fees(estimate.ngn_value, estimate.fees)

    def preview(self) -> TradePreview | None:
        quotation = self.state.quotation
        if quotation is None:
            return None
        ngn_value = Decimal("0")
        if self.ngn_price.rate is not None:
            ngn_value = to_ngn(quotation.from_amount, self.ngn_price.rate)
        usd_value = to_usd(ngn_value, self.usd_ngn_rate)
        return TradePreview(
            quotation_id=quotation.id,
            from_currency=quotation.from_currency,
            to_currency=quotation.to_currency,
            from_amount=quotation.from_amount,
            to_amount=quotation.to_amount,
            quoted_price=quotation.quoted_price,
            ngn_value=ngn_value,
            fees=self.fee_schedule.compute_fee(
                ngn_value, quotation.from_currency, reference_notional=usd_value, referral=self.referral,
            ),
            seconds_remaining=self.countdown.seconds_remaining if self.countdown.is_active else 0,
            can_confirm=self.countdown.can_confirm and not self.is_confirming,
        )

    # --- Actions ---

    async def request_quote(self) -> Quotation | None:
        """Validate, then ask for a quotation and start its countdown."""
        if self.is_loading or self.is_confirming:
            return None

        self.error = self.validate()
        if self.error:
            return None

        base = self.base_amount()
        s = self.state
        generation = self._generation
        self.is_loading = True
        try:
            quotation = await self.gateway.request_quote(
                s.from_currency, s.to_currency, format_amount(base, s.from_currency),
            )
        except QuoteRequestFailed as exc:
            if generation == self._generation:
                self._notify("error", f"Failed to get quote: {exc.reason}")
            return None
        finally:
            self.is_loading = False

        if generation != self._generation:
            logger.info("Ignoring quotation %s for a form that was reset", quotation.id)
            return None

        self.state.quotation = quotation
        self.countdown.start(quotation)
        if not self.countdown.is_active:
            return None
        if self.auto_tick:
            self.countdown.start_timer(self._sleep)
        return quotation

    async def confirm(self) -> TradeResult | None:
        """
        Execute the live quotation.

        A no-op when the countdown has run out or a confirmation is already
        in flight. On failure the quotation is discarded and balances are
        left alone; on success balances are refreshed and the form reset.
        """
        if self.is_confirming or not self.countdown.can_confirm:
            return None

        quotation = self.countdown.confirm()
        generation = self._generation
        self.is_confirming = True
        try:
            result = await self.gateway.confirm(quotation)
        except QuotationExpired:
            if generation == self._generation:
                self.state.quotation = None
                self._notify("info", QUOTE_EXPIRED_MESSAGE)
            return None
        except ConfirmFailed as exc:
            if generation == self._generation:
                self.state.quotation = None
                self._notify("error", f"Failed to confirm swap: {exc.reason}")
            return None
        finally:
            self.is_confirming = False

        await self.refresh_balances()
        if generation == self._generation:
            self._notify("success", "Swap confirmed successfully!")
            self.reset()
        return result

    def cancel(self) -> None:
        """Back out of the preview; the typed amount stays."""
        self._drop_quotation()

    def reset(self) -> None:
        """Forget amount, quotation and countdown. Safe to call repeatedly."""
        self._generation += 1
        self.countdown.reset()
        self.state = SwapFormState(from_currency=self._initial_from_currency)
        self.error = None

    def toggle_balance_visibility(self) -> bool:
        """Show or mask balances. Masking never stops the refresh."""
        self.balances_visible = not self.balances_visible
        return self.balances_visible

    async def refresh_balances(self) -> None:
        try:
            self.balances = await self.gateway.get_balances()
        except WalletUnavailable as exc:
            logger.warning("Balance refresh failed: %s", exc)
            self._notify("error", "Failed to fetch wallet balances")

    # --- Internals ---

    def _drop_quotation(self) -> None:
        self.countdown.cancel()
        self.state.quotation = None

    def _on_quote_expired(self, quotation: Quotation) -> None:
        if self.state.quotation is not None and self.state.quotation.id == quotation.id:
            self.state.quotation = None
        self._notify("info", QUOTE_EXPIRED_MESSAGE)

    def _on_rate_error(self, exc: RateUnavailable) -> None:
        self._notify("error", "Failed to fetch market rate")

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))
