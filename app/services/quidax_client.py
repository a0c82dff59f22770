"""
Quidax exchange client — market tickers, swap quotations, wallets.

Architecture:
  - QuidaxClient (protocol) defines the interface
  - MockQuidaxClient prices quotes off fixed tickers for development
  - LiveQuidaxClient calls the real Quidax API over httpx
  - QUIDAX_MOCK=true (default) selects the mock client

Every method returns the ``data`` member of the Quidax envelope. Callers
validate it against ``app.schemas.quidax`` before using it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_DOWN
from typing import Protocol

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class QuidaxAPIError(Exception):
    """Raised when Quidax answers non-2xx, times out, or returns non-JSON."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Client protocol
# ---------------------------------------------------------------------------


class QuidaxClient(Protocol):
    async def get_tickers(self) -> dict[str, dict]: ...

    async def create_swap_quotation(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> dict: ...

    async def create_temporary_swap_quotation(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> dict: ...

    async def confirm_swap_quotation(self, user_id: str, quotation_id: str) -> dict: ...

    async def get_wallets(self, user_id: str) -> list[dict]: ...

    async def get_swap_transactions(self, user_id: str) -> list[dict]: ...


# ---------------------------------------------------------------------------
# Mock client (development / testing)
# ---------------------------------------------------------------------------

MOCK_USDT_NGN = Decimal("1585.23")

# Price of one unit in USDT
MOCK_USDT_PRICES: dict[str, Decimal] = {
    "usdt": Decimal("1"),
    "usdc": Decimal("1"),
    "btc": Decimal("65000"),
    "eth": Decimal("3200"),
    "sol": Decimal("150"),
    "doge": Decimal("0.15"),
}

MOCK_WALLETS: dict[str, Decimal] = {
    "ngn": Decimal("500000"),
    "usdt": Decimal("1000"),
    "btc": Decimal("0.05"),
    "eth": Decimal("0"),
}


def _mock_tickers() -> dict[str, dict]:
    tickers: dict[str, dict] = {
        "usdtngn": {"ticker": {"last": str(MOCK_USDT_NGN)}},
    }
    for coin, price in MOCK_USDT_PRICES.items():
        if coin == "usdt":
            continue
        tickers[f"{coin}usdt"] = {"ticker": {"last": str(price)}}
    for coin in ("btc", "eth"):
        tickers[f"{coin}ngn"] = {
            "ticker": {"last": str(MOCK_USDT_PRICES[coin] * MOCK_USDT_NGN)}
        }
    return tickers


def _mock_usdt_price(currency: str) -> Decimal:
    currency = currency.lower()
    if currency == "ngn":
        return Decimal("1") / MOCK_USDT_NGN
    try:
        return MOCK_USDT_PRICES[currency]
    except KeyError:
        raise QuidaxAPIError(f"Market not available for {currency}", status_code=422)


class MockQuidaxClient:
    """In-memory exchange with deterministic prices and single-use quotations."""

    def __init__(self):
        self._quotations: dict[str, dict] = {}
        self._wallets: dict[str, dict[str, Decimal]] = {}
        self._swaps: dict[str, list[dict]] = {}

    async def get_tickers(self) -> dict[str, dict]:
        return _mock_tickers()

    def _price(self, from_currency: str, to_currency: str, from_amount: str) -> dict:
        amount = Decimal(str(from_amount))
        if amount <= 0:
            raise QuidaxAPIError("from_amount must be greater than zero", status_code=422)
        price = (_mock_usdt_price(from_currency) / _mock_usdt_price(to_currency)).quantize(
            Decimal("0.000000000001")
        )
        now = datetime.now(timezone.utc)
        return {
            "id": uuid.uuid4().hex,
            "from_currency": from_currency.lower(),
            "to_currency": to_currency.lower(),
            "quoted_price": str(price),
            "quoted_currency": to_currency.lower(),
            "from_amount": str(amount),
            "to_amount": str((amount * price).quantize(Decimal("0.00000001"), rounding=ROUND_DOWN)),
            "confirmed": False,
            "expires_at": (now + timedelta(seconds=settings.QUOTE_COUNTDOWN_SECONDS)).isoformat(),
            "created_at": now.isoformat(),
        }

    async def create_swap_quotation(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> dict:
        quotation = self._price(from_currency, to_currency, from_amount)
        self._quotations[quotation["id"]] = {**quotation, "user_id": user_id}
        return quotation

    async def create_temporary_swap_quotation(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> dict:
        return self._price(from_currency, to_currency, from_amount)

    async def confirm_swap_quotation(self, user_id: str, quotation_id: str) -> dict:
        quotation = self._quotations.get(quotation_id)
        if quotation is None or quotation["user_id"] != user_id:
            raise QuidaxAPIError("Quotation not found", status_code=404)
        if quotation["confirmed"]:
            raise QuidaxAPIError("Quotation already confirmed", status_code=422)
        if datetime.fromisoformat(quotation["expires_at"]) <= datetime.now(timezone.utc):
            raise QuidaxAPIError("Quotation has expired", status_code=422)

        wallets = self._wallets_for(user_id)
        from_currency = quotation["from_currency"]
        to_currency = quotation["to_currency"]
        from_amount = Decimal(quotation["from_amount"])
        to_amount = Decimal(quotation["to_amount"])
        if wallets.get(from_currency, Decimal("0")) < from_amount:
            raise QuidaxAPIError("Insufficient balance", status_code=422)

        wallets[from_currency] -= from_amount
        wallets[to_currency] = wallets.get(to_currency, Decimal("0")) + to_amount
        quotation["confirmed"] = True

        now = datetime.now(timezone.utc).isoformat()
        swap = {
            "id": uuid.uuid4().hex,
            "from_currency": from_currency,
            "to_currency": to_currency,
            "from_amount": str(from_amount),
            "received_amount": str(to_amount),
            "execution_price": quotation["quoted_price"],
            "status": "completed",
            "created_at": now,
            "updated_at": now,
        }
        self._swaps.setdefault(user_id, []).append(swap)
        return swap

    def _wallets_for(self, user_id: str) -> dict[str, Decimal]:
        if user_id not in self._wallets:
            self._wallets[user_id] = dict(MOCK_WALLETS)
        return self._wallets[user_id]

    async def get_wallets(self, user_id: str) -> list[dict]:
        return [
            {"id": f"{user_id}-{currency}", "currency": currency, "balance": str(balance)}
            for currency, balance in self._wallets_for(user_id).items()
        ]

    async def get_swap_transactions(self, user_id: str) -> list[dict]:
        return list(self._swaps.get(user_id, []))


# ---------------------------------------------------------------------------
# Live client
# ---------------------------------------------------------------------------


class LiveQuidaxClient:
    """Calls the Quidax REST API with the platform secret key."""

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self._timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, json: dict | None = None):
        headers = {
            "Authorization": f"Bearer {self._secret_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport,
            ) as client:
                resp = await client.request(method, path, json=json, headers=headers)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            logger.error(
                "Quidax %s %s failed: %s %s",
                method, path, exc.response.status_code, message,
            )
            raise QuidaxAPIError(message, status_code=exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.error("Quidax %s %s request error: %s", method, path, exc)
            raise QuidaxAPIError(f"Quidax request error: {exc}") from exc
        except ValueError as exc:
            logger.error("Quidax %s %s returned non-JSON body", method, path)
            raise QuidaxAPIError("Invalid response format from Quidax") from exc

        if not isinstance(payload, dict) or "data" not in payload:
            raise QuidaxAPIError("Quidax response missing data envelope")
        return payload["data"]

    async def get_tickers(self) -> dict[str, dict]:
        return await self._request("GET", "/markets/tickers")

    async def create_swap_quotation(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> dict:
        return await self._request(
            "POST",
            f"/users/{user_id}/swap_quotation",
            json={
                "from_currency": from_currency.lower(),
                "to_currency": to_currency.lower(),
                "from_amount": from_amount,
            },
        )

    async def create_temporary_swap_quotation(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> dict:
        return await self._request(
            "POST",
            f"/users/{user_id}/temporary_swap_quotation",
            json={
                "from_currency": from_currency.lower(),
                "to_currency": to_currency.lower(),
                "from_amount": from_amount,
            },
        )

    async def confirm_swap_quotation(self, user_id: str, quotation_id: str) -> dict:
        return await self._request(
            "POST", f"/users/{user_id}/swap_quotation/{quotation_id}/confirm",
        )

    async def get_wallets(self, user_id: str) -> list[dict]:
        return await self._request("GET", f"/users/{user_id}/wallets")

    async def get_swap_transactions(self, user_id: str) -> list[dict]:
        return await self._request("GET", f"/users/{user_id}/swap_transactions")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Quidax request failed ({response.status_code})"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or "Request failed"
    return "Request failed"


# ---------------------------------------------------------------------------
# Factory: selects client based on config
# ---------------------------------------------------------------------------

_client: QuidaxClient | None = None


def get_quidax_client() -> QuidaxClient:
    """Return the configured Quidax client (cached after first call)."""
    global _client
    if _client is not None:
        return _client

    if settings.QUIDAX_MOCK:
        logger.info("Using MockQuidaxClient for exchange calls")
        _client = MockQuidaxClient()
    else:
        logger.info("Using LiveQuidaxClient (live API)")
        _client = LiveQuidaxClient(
            base_url=settings.QUIDAX_API_URL,
            secret_key=settings.QUIDAX_SECRET_KEY,
            timeout=settings.QUIDAX_TIMEOUT_SECONDS,
        )
    return _client


def set_quidax_client(client: QuidaxClient | None) -> None:
    """Override the Quidax client (used in tests)."""
    global _client
    _client = client
