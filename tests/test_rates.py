"""Tests for the rate fetcher — pair resolution, ticker caching, reference rate fallback."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.services.quidax_client import MOCK_USDT_NGN, QuidaxAPIError
from app.services.rate_service import (
    TICKERS_CACHE_KEY,
    RateService,
    RateUnavailable,
    resolve_rate,
)

TICKERS = {
    "usdtngn": {"ticker": {"last": "1585.23"}},
    "btcusdt": {"ticker": {"last": "65000"}},
    "ngnghs": {"ticker": {"last": "0.008"}},
    "usdcngn": {"ticker": {"last": "1580"}},
    "xrpusdt": {"ticker": {"last": "abc"}},
    "dogeusdt": {"ticker": {"last": "0"}},
}


# ---------------------------------------------------------------------------
# Pair resolution
# ---------------------------------------------------------------------------


class TestResolveRate:

    def test_identity_pair(self):
        quote = resolve_rate(TICKERS, "ngn", "NGN")
        assert quote.rate == Decimal("1")
        assert quote.source == "identity"

    def test_direct_market(self):
        quote = resolve_rate(TICKERS, "USDT", "NGN")
        assert quote.rate == Decimal("1585.23")
        assert quote.source == "direct"
        assert (quote.from_currency, quote.to_currency) == ("USDT", "NGN")

    def test_inverse_market(self):
        quote = resolve_rate(TICKERS, "ngn", "usdt")
        assert quote.rate == Decimal("1") / Decimal("1585.23")
        assert quote.source == "inverse"

    def test_usdt_bridge(self):
        """BTC/NGN has no market; it is priced through USDT."""
        quote = resolve_rate(TICKERS, "BTC", "NGN")
        assert quote.source == "usdt_bridge"
        assert quote.rate.quantize(Decimal("0.01")) == Decimal("103039950.00")

    def test_usdt_bridge_between_two_coins(self):
        tickers = {**TICKERS, "ethusdt": {"ticker": {"last": "3200"}}}
        quote = resolve_rate(tickers, "BTC", "ETH")
        assert quote.source == "usdt_bridge"
        assert quote.rate == Decimal("65000") / Decimal("3200")

    def test_ngn_bridge(self):
        """USDC/GHS only connects through NGN markets."""
        quote = resolve_rate(TICKERS, "USDC", "GHS")
        assert quote.source == "ngn_bridge"
        assert quote.rate == Decimal("1580") * Decimal("0.008")

    def test_missing_pair_raises(self):
        with pytest.raises(RateUnavailable) as exc_info:
            resolve_rate(TICKERS, "FOO", "NGN")
        assert exc_info.value.from_currency == "FOO"

    @pytest.mark.parametrize("coin", ["XRP", "DOGE"])
    def test_non_numeric_or_zero_last_is_unusable(self, coin):
        """A garbage price never becomes a rate."""
        with pytest.raises(RateUnavailable):
            resolve_rate(TICKERS, coin, "USDT")

    def test_empty_code_raises(self):
        with pytest.raises(RateUnavailable):
            resolve_rate(TICKERS, "", "NGN")


# ---------------------------------------------------------------------------
# RateService
# ---------------------------------------------------------------------------


class TestRateService:

    @pytest.mark.asyncio
    async def test_fetches_and_caches_tickers(self, mock_redis):
        """Cold cache: ask the exchange and cache the board with the ticker TTL."""
        client = AsyncMock()
        client.get_tickers = AsyncMock(return_value=TICKERS)
        svc = RateService(mock_redis, client)

        quote = await svc.get_rate("USDT", "NGN")

        assert quote.rate == Decimal("1585.23")
        mock_redis.setex.assert_awaited_once()
        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == TICKERS_CACHE_KEY
        assert ttl == settings.RATE_CACHE_TTL_SECONDS
        assert json.loads(payload) == TICKERS

    @pytest.mark.asyncio
    async def test_uses_cached_tickers(self, mock_redis):
        mock_redis.store[TICKERS_CACHE_KEY] = json.dumps(TICKERS)
        client = AsyncMock()
        svc = RateService(mock_redis, client)

        quote = await svc.get_rate("BTC", "USDT")

        assert quote.rate == Decimal("65000")
        client.get_tickers.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upstream_error_is_rate_unavailable(self, mock_redis):
        client = AsyncMock()
        client.get_tickers = AsyncMock(side_effect=QuidaxAPIError("boom", status_code=500))
        svc = RateService(mock_redis, client)

        with pytest.raises(RateUnavailable) as exc_info:
            await svc.get_rate("USDT", "NGN")
        assert "boom" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_all_rates_upper_cased(self, mock_redis):
        client = AsyncMock()
        client.get_tickers = AsyncMock(return_value=TICKERS)
        rates = await RateService(mock_redis, client).get_all_rates()

        assert rates["USDTNGN"] == Decimal("1585.23")
        assert "XRPUSDT" not in rates
        assert "DOGEUSDT" not in rates

    @pytest.mark.asyncio
    async def test_usd_ngn_from_market(self, mock_redis, quidax):
        rate = await RateService(mock_redis, quidax).get_usd_ngn_rate()
        assert rate == MOCK_USDT_NGN

    @pytest.mark.asyncio
    async def test_usd_ngn_falls_back_to_default(self, mock_redis):
        client = AsyncMock()
        client.get_tickers = AsyncMock(side_effect=QuidaxAPIError("down"))
        rate = await RateService(mock_redis, client).get_usd_ngn_rate()
        assert rate == settings.DEFAULT_USD_NGN_RATE

    @pytest.mark.asyncio
    async def test_mock_exchange_prices_btc_in_ngn(self, mock_redis, quidax):
        """The default client resolves every mock coin against NGN."""
        svc = RateService(mock_redis)
        for coin in ("BTC", "ETH", "USDT", "USDC", "SOL", "DOGE"):
            quote = await svc.get_rate(coin, "NGN")
            assert quote.rate > 0
