"""
Market rate fetcher — resolves an exchange rate for any currency pair.

Rates come from the Quidax ticker board. A pair is resolved, in order,
as the identity pair, a direct market, an inverse market, or a bridge
through USDT or NGN. The ticker board is cached in Redis for a few
seconds so that several open swap forms polling the same pair do not
each hit the exchange.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from app.config import settings
from app.services.quidax_client import QuidaxAPIError, QuidaxClient, get_quidax_client

logger = logging.getLogger(__name__)

TICKERS_CACHE_KEY = "quidax:tickers"

BRIDGE_CURRENCIES = ("usdt", "ngn")


class RateUnavailable(Exception):
    """Raised when no usable rate can be produced for a pair."""

    def __init__(self, from_currency: str, to_currency: str, reason: str):
        super().__init__(f"Rate unavailable for {from_currency}/{to_currency}: {reason}")
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.reason = reason


@dataclass(frozen=True)
class RateQuote:
    """A resolved market rate: destination units per one source unit."""
    from_currency: str
    to_currency: str
    rate: Decimal
    source: str


def _last_price(tickers: dict, market: str) -> Decimal | None:
    """Return the positive ``last`` price of *market*, or None if unusable."""
    entry = tickers.get(market)
    if not isinstance(entry, dict):
        return None
    ticker = entry.get("ticker") or {}
    try:
        price = Decimal(str(ticker.get("last")))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def _bridge_leg(tickers: dict, currency: str, bridge: str) -> Decimal | None:
    """Price of one *currency* unit in *bridge* units."""
    if currency == bridge:
        return Decimal("1")
    price = _last_price(tickers, f"{currency}{bridge}")
    if price is not None:
        return price
    inverse = _last_price(tickers, f"{bridge}{currency}")
    if inverse is not None:
        return Decimal("1") / inverse
    return None


def resolve_rate(tickers: dict, from_currency: str, to_currency: str) -> RateQuote:
    """
    Resolve *from_currency* → *to_currency* against a ticker board.

    Raises RateUnavailable when no direct, inverse or bridged route exists.
    """
    src = from_currency.strip().lower()
    dst = to_currency.strip().lower()
    if not src or not dst:
        raise RateUnavailable(from_currency, to_currency, "currency code is empty")

    pair = (src.upper(), dst.upper())

    if src == dst:
        return RateQuote(*pair, rate=Decimal("1"), source="identity")

    direct = _last_price(tickers, f"{src}{dst}")
    if direct is not None:
        return RateQuote(*pair, rate=direct, source="direct")

    inverse = _last_price(tickers, f"{dst}{src}")
    if inverse is not None:
        return RateQuote(*pair, rate=Decimal("1") / inverse, source="inverse")

    for bridge in BRIDGE_CURRENCIES:
        from_leg = _bridge_leg(tickers, src, bridge)
        to_leg = _bridge_leg(tickers, dst, bridge)
        if from_leg is not None and to_leg is not None:
            return RateQuote(*pair, rate=from_leg / to_leg, source=f"{bridge}_bridge")

    raise RateUnavailable(from_currency, to_currency, "no market for this pair")


class RateService:
    """Rate lookups over the cached Quidax ticker board."""

    def __init__(self, redis, client: QuidaxClient | None = None):
        self.redis = redis
        self.client = client or get_quidax_client()

    async def get_tickers(self) -> dict:
        """Return the ticker board, from cache when fresh."""
        cached = await self.redis.get(TICKERS_CACHE_KEY)
        if cached is not None:
            return json.loads(cached)

        tickers = await self.client.get_tickers()
        if not isinstance(tickers, dict):
            raise QuidaxAPIError("Ticker board is not an object")

        await self.redis.setex(
            TICKERS_CACHE_KEY,
            settings.RATE_CACHE_TTL_SECONDS,
            json.dumps(tickers),
        )
        return tickers

    async def get_rate(self, from_currency: str, to_currency: str) -> RateQuote:
        """
        Current market rate for a pair (case-insensitive codes).

        Failure is always RateUnavailable, never a zero rate.
        """
        try:
            tickers = await self.get_tickers()
        except QuidaxAPIError as exc:
            logger.error("Ticker fetch failed for %s/%s: %s", from_currency, to_currency, exc)
            raise RateUnavailable(from_currency, to_currency, str(exc)) from exc

        return resolve_rate(tickers, from_currency, to_currency)

    async def get_all_rates(self) -> dict[str, Decimal]:
        """Every market's last price, keyed by upper-case market name."""
        try:
            tickers = await self.get_tickers()
        except QuidaxAPIError as exc:
            raise RateUnavailable("*", "*", str(exc)) from exc

        rates: dict[str, Decimal] = {}
        for market in tickers:
            price = _last_price(tickers, market)
            if price is not None:
                rates[market.upper()] = price
        return rates

    async def get_usd_ngn_rate(self) -> Decimal:
        """
        Reference USD/NGN rate (via the USDT/NGN market).

        Falls back to DEFAULT_USD_NGN_RATE when the market is unavailable.
        """
        try:
            quote = await self.get_rate("USDT", "NGN")
        except RateUnavailable as exc:
            logger.warning(
                "USDT/NGN unavailable (%s); using default reference rate %s",
                exc.reason, settings.DEFAULT_USD_NGN_RATE,
            )
            return settings.DEFAULT_USD_NGN_RATE
        return quote.rate
