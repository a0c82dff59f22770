"""
Quote countdown — lifecycle of one live quotation.

States:
    IDLE -> ACTIVE(quotation, seconds_remaining) -> CONFIRMED | CANCELLED | EXPIRED -> IDLE

ACTIVE ticks down once per second. Reaching zero expires the quotation;
an explicit confirm or cancel ends it early. Terminal states hand straight
back to IDLE, with the outcome kept in ``last_outcome``. Confirming is only
possible while ACTIVE with time left on the clock.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from app.swap.config import QUOTE_COUNTDOWN_SECONDS

if TYPE_CHECKING:
    from app.services.swap_service import Quotation

logger = logging.getLogger(__name__)


class QuoteState(str, enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_STATES = frozenset({QuoteState.CONFIRMED, QuoteState.CANCELLED, QuoteState.EXPIRED})

VALID_TRANSITIONS: dict[QuoteState, set[QuoteState]] = {
    QuoteState.IDLE: {QuoteState.ACTIVE},
    QuoteState.ACTIVE: {QuoteState.CONFIRMED, QuoteState.CANCELLED, QuoteState.EXPIRED},
    QuoteState.CONFIRMED: {QuoteState.IDLE},
    QuoteState.CANCELLED: {QuoteState.IDLE},
    QuoteState.EXPIRED: {QuoteState.IDLE},
}


class QuoteNotActive(Exception):
    """Raised when confirming without a live quotation on the clock."""


@dataclass(frozen=True)
class Transition:
    from_state: QuoteState
    to_state: QuoteState
    quotation_id: str | None


class QuoteCountdown:
    """
    Owns the live quotation and its countdown.

    ``tick()`` advances the clock by one second and is what the timer task
    calls; tests drive it directly. ``on_expired`` is called with the
    discarded quotation when the clock runs out.
    """

    def __init__(
        self,
        duration: int | None = None,
        on_expired: Callable[["Quotation"], None] | None = None,
    ):
        self.duration = duration if duration is not None else QUOTE_COUNTDOWN_SECONDS
        if self.duration <= 0:
            raise ValueError("Countdown duration must be positive")
        self.on_expired = on_expired
        self.state = QuoteState.IDLE
        self.quotation: Quotation | None = None
        self.seconds_remaining = self.duration
        self.last_outcome: QuoteState | None = None
        self.history: list[Transition] = []
        self._task: asyncio.Task | None = None

    # --- Transitions ---

    def _move(self, new_state: QuoteState) -> None:
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise ValueError(f"Invalid transition: {self.state.value} -> {new_state.value}")
        quotation_id = self.quotation.id if self.quotation else None
        self.history.append(Transition(self.state, new_state, quotation_id))
        self.state = new_state

    def _finish(self, outcome: QuoteState) -> "Quotation":
        quotation = self.quotation
        self._move(outcome)
        self.last_outcome = outcome
        self.quotation = None
        self._stop_timer()
        self._move(QuoteState.IDLE)
        self.seconds_remaining = self.duration
        return quotation

    def start(self, quotation: "Quotation") -> None:
        """
        Begin the countdown for a freshly issued quotation.

        The clock never runs past the quotation's own ``expires_at``; a
        quotation that is already dead expires straight away.
        """
        if self.state is QuoteState.ACTIVE:
            self._finish(QuoteState.CANCELLED)
        self._move(QuoteState.ACTIVE)
        self.quotation = quotation
        self.seconds_remaining = min(self.duration, quotation.seconds_remaining())
        self.last_outcome = None
        if self.seconds_remaining == 0:
            self._expire()

    def _expire(self) -> None:
        expired = self._finish(QuoteState.EXPIRED)
        logger.warning("Quotation %s expired before confirmation", expired.id)
        if self.on_expired is not None:
            self.on_expired(expired)

    @property
    def is_active(self) -> bool:
        return self.state is QuoteState.ACTIVE

    @property
    def can_confirm(self) -> bool:
        return self.state is QuoteState.ACTIVE and self.seconds_remaining > 0

    def tick(self) -> QuoteState:
        """Advance one second. Returns the state after the tick."""
        if self.state is not QuoteState.ACTIVE:
            return self.state

        self.seconds_remaining = max(0, self.seconds_remaining - 1)
        if self.seconds_remaining == 0:
            self._expire()
        return self.state

    def confirm(self) -> "Quotation":
        """Take the live quotation for execution. Raises QuoteNotActive if none."""
        if not self.can_confirm:
            raise QuoteNotActive("No live quotation to confirm")
        return self._finish(QuoteState.CONFIRMED)

    def cancel(self) -> bool:
        """Drop the live quotation. Returns False if there was none."""
        if self.state is not QuoteState.ACTIVE:
            return False
        self._finish(QuoteState.CANCELLED)
        return True

    def reset(self) -> None:
        """Return to IDLE with the clock at its default, from any state."""
        if self.state is QuoteState.ACTIVE:
            self._finish(QuoteState.CANCELLED)
        self.last_outcome = None
        self.seconds_remaining = self.duration

    # --- Timer ---

    def start_timer(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        """Run the one-second ticker as a background task for the live quotation."""
        self._stop_timer()
        if self.quotation is not None:
            self._task = asyncio.create_task(self._run(self.quotation.id, sleep))

    async def _run(self, quotation_id: str, sleep) -> None:
        while self.state is QuoteState.ACTIVE and self.quotation is not None:
            await sleep(1)
            if self.quotation is None or self.quotation.id != quotation_id:
                break
            self.tick()

    def _stop_timer(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    async def close(self) -> None:
        """Tear down: cancel the ticker and wait for it to finish."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
