"""Tests for the quote countdown state machine."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.services.swap_service import Quotation
from app.swap.countdown import QuoteCountdown, QuoteNotActive, QuoteState


def _quotation(quotation_id: str = "quote-1", valid_for: float = 60) -> Quotation:
    now = datetime.now(timezone.utc)
    return Quotation(
        id=quotation_id,
        from_currency="USDT",
        to_currency="NGN",
        from_amount=Decimal("100"),
        quoted_price=Decimal("1585.23"),
        to_amount=Decimal("158523"),
        issued_at=now,
        expires_at=now + timedelta(seconds=valid_for),
        idempotency_key="0b9d2c4e-6f1a-4c3b-8e7d-5a4f3b2c1d0e",
    )


async def _fast_sleep(_seconds):
    await asyncio.sleep(0)


class TestCountdownTransitions:

    def test_starts_idle(self):
        countdown = QuoteCountdown(14)
        assert countdown.state is QuoteState.IDLE
        assert countdown.seconds_remaining == 14
        assert countdown.can_confirm is False

    def test_start_activates(self):
        countdown = QuoteCountdown(14)
        countdown.start(_quotation())
        assert countdown.state is QuoteState.ACTIVE
        assert countdown.seconds_remaining == 14
        assert countdown.can_confirm is True

    @pytest.mark.parametrize("duration", [1, 5, 14, 30])
    def test_n_ticks_expire_exactly_once(self, duration):
        """Advancing N times from N always ends Expired, never below zero."""
        on_expired = MagicMock()
        countdown = QuoteCountdown(duration, on_expired=on_expired)
        quotation = _quotation()
        countdown.start(quotation)

        for remaining in range(duration - 1, 0, -1):
            assert countdown.tick() is QuoteState.ACTIVE
            assert countdown.seconds_remaining == remaining
            assert countdown.can_confirm is True

        assert countdown.tick() is QuoteState.IDLE
        assert countdown.last_outcome is QuoteState.EXPIRED
        on_expired.assert_called_once_with(quotation)

        # More ticks never go negative or reactivate
        for _ in range(3):
            assert countdown.tick() is QuoteState.IDLE
            assert countdown.seconds_remaining >= 0
        on_expired.assert_called_once()
        assert countdown.quotation is None

    def test_terminal_states_hand_back_to_idle(self):
        countdown = QuoteCountdown(3)
        countdown.start(_quotation())
        countdown.cancel()
        moves = [(t.from_state, t.to_state) for t in countdown.history]
        assert moves == [
            (QuoteState.IDLE, QuoteState.ACTIVE),
            (QuoteState.ACTIVE, QuoteState.CANCELLED),
            (QuoteState.CANCELLED, QuoteState.IDLE),
        ]

    def test_confirm_takes_quotation(self):
        countdown = QuoteCountdown(14)
        quotation = _quotation()
        countdown.start(quotation)

        assert countdown.confirm() is quotation
        assert countdown.state is QuoteState.IDLE
        assert countdown.last_outcome is QuoteState.CONFIRMED
        assert countdown.seconds_remaining == 14

    def test_confirm_after_expiry_raises(self):
        countdown = QuoteCountdown(2)
        countdown.start(_quotation())
        countdown.tick()
        countdown.tick()

        assert countdown.can_confirm is False
        with pytest.raises(QuoteNotActive):
            countdown.confirm()

    def test_confirm_when_idle_raises(self):
        with pytest.raises(QuoteNotActive):
            QuoteCountdown(14).confirm()

    def test_cancel(self):
        on_expired = MagicMock()
        countdown = QuoteCountdown(14, on_expired=on_expired)
        countdown.start(_quotation())

        assert countdown.cancel() is True
        assert countdown.last_outcome is QuoteState.CANCELLED
        assert countdown.cancel() is False
        on_expired.assert_not_called()

    def test_new_quote_replaces_active_one(self):
        countdown = QuoteCountdown(14)
        countdown.start(_quotation("old"))
        countdown.tick()
        countdown.start(_quotation("new"))

        assert countdown.quotation.id == "new"
        assert countdown.seconds_remaining == 14
        assert (QuoteState.ACTIVE, QuoteState.CANCELLED) in [
            (t.from_state, t.to_state) for t in countdown.history
        ]

    def test_clock_capped_by_quotation_expiry(self):
        """An exchange expiry earlier than the window shortens the clock."""
        on_expired = MagicMock()
        countdown = QuoteCountdown(14, on_expired=on_expired)
        countdown.start(_quotation(valid_for=2.5))

        assert countdown.seconds_remaining == 3
        countdown.tick()
        countdown.tick()
        assert countdown.can_confirm is True
        assert countdown.tick() is QuoteState.IDLE
        assert countdown.last_outcome is QuoteState.EXPIRED
        on_expired.assert_called_once()

    def test_dead_quotation_expires_on_start(self):
        on_expired = MagicMock()
        countdown = QuoteCountdown(14, on_expired=on_expired)
        quotation = _quotation(valid_for=-1)
        countdown.start(quotation)

        assert countdown.state is QuoteState.IDLE
        assert countdown.last_outcome is QuoteState.EXPIRED
        assert countdown.can_confirm is False
        on_expired.assert_called_once_with(quotation)
        with pytest.raises(QuoteNotActive):
            countdown.confirm()

    def test_reset_is_idempotent(self):
        countdown = QuoteCountdown(14)
        countdown.start(_quotation())
        countdown.tick()
        countdown.reset()
        first = (countdown.state, countdown.quotation, countdown.seconds_remaining, countdown.last_outcome)
        countdown.reset()
        countdown.reset()
        assert (countdown.state, countdown.quotation, countdown.seconds_remaining, countdown.last_outcome) == first
        assert first == (QuoteState.IDLE, None, 14, None)

    @pytest.mark.parametrize("duration", [0, -1])
    def test_duration_must_be_positive(self, duration):
        with pytest.raises(ValueError):
            QuoteCountdown(duration)

    def test_default_duration_from_settings(self):
        from app.swap.config import QUOTE_COUNTDOWN_SECONDS
        assert QuoteCountdown().duration == QUOTE_COUNTDOWN_SECONDS


class TestCountdownTimer:

    @pytest.mark.asyncio
    async def test_timer_runs_to_expiry(self):
        on_expired = MagicMock()
        countdown = QuoteCountdown(5, on_expired=on_expired)
        countdown.start(_quotation())
        countdown.start_timer(sleep=_fast_sleep)

        for _ in range(50):
            await asyncio.sleep(0)

        assert countdown.state is QuoteState.IDLE
        assert countdown.last_outcome is QuoteState.EXPIRED
        on_expired.assert_called_once()
        await countdown.close()

    @pytest.mark.asyncio
    async def test_confirm_stops_timer(self):
        on_expired = MagicMock()
        countdown = QuoteCountdown(5, on_expired=on_expired)
        countdown.start(_quotation())
        countdown.start_timer(sleep=_fast_sleep)
        await asyncio.sleep(0)

        countdown.confirm()
        for _ in range(50):
            await asyncio.sleep(0)

        assert countdown.last_outcome is QuoteState.CONFIRMED
        on_expired.assert_not_called()
        await countdown.close()

    @pytest.mark.asyncio
    async def test_close_cancels_running_timer(self):
        countdown = QuoteCountdown(14)
        countdown.start(_quotation())
        countdown.start_timer()  # real one-second sleep

        await countdown.close()
        assert countdown.state is QuoteState.ACTIVE
        assert countdown.seconds_remaining == 14
