"""
Interval refreshers for an open swap form.

Poller runs a coroutine on a fixed interval as a background task.
RatePoller keeps the indicative rate for the selected pair: it refreshes
on every tick and whenever the pair changes, and a failed fetch leaves
the previous rate in place, flagged stale, until the next tick.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable

from app.services.rate_service import RateUnavailable
from app.swap.config import RATE_REFRESH_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class Poller:
    """Calls *refresh* every *interval* seconds until stopped."""

    def __init__(
        self,
        interval: float,
        refresh: Callable[[], Awaitable[object]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.interval = interval
        self.refresh = refresh
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        while True:
            await self._sleep(self.interval)
            try:
                await self.refresh()
            except Exception:
                # Keep polling; the next tick tries again
                logger.exception("Scheduled refresh failed")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


class RatePoller:
    """Indicative rate for the currently selected currency pair."""

    def __init__(
        self,
        fetch_rate: Callable[[str, str], Awaitable[Decimal]],
        interval: float = RATE_REFRESH_INTERVAL_SECONDS,
        on_error: Callable[[RateUnavailable], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._fetch_rate = fetch_rate
        self.on_error = on_error
        self.pair: tuple[str, str] | None = None
        self.rate: Decimal | None = None
        self.stale = False
        self.poller = Poller(interval, self.refresh, sleep=sleep)

    async def set_pair(self, from_currency: str, to_currency: str) -> Decimal | None:
        """Select a pair; a new pair drops the old rate and fetches once."""
        pair = (from_currency.upper(), to_currency.upper())
        if pair == self.pair:
            return self.rate
        self.pair = pair
        self.rate = None
        self.stale = False
        return await self.refresh()

    async def refresh(self) -> Decimal | None:
        if self.pair is None or not all(self.pair):
            return None
        pair = self.pair
        try:
            rate = await self._fetch_rate(*pair)
        except RateUnavailable as exc:
            if pair == self.pair:
                self.stale = True
            logger.warning("Rate refresh failed for %s/%s: %s", pair[0], pair[1], exc.reason)
            if self.on_error is not None:
                self.on_error(exc)
            return self.rate

        # A response for a pair that is no longer selected is ignored
        if pair == self.pair:
            self.rate = rate
            self.stale = False
        return self.rate

    def start(self) -> None:
        self.poller.start()

    async def stop(self) -> None:
        await self.poller.stop()
