"""
Swap quotation requester and trade confirmer.

QuotationService asks Quidax for a time-bounded quotation and keeps it in
Redis for the length of the quote window, so the confirm endpoint can
refuse anything that has lapsed. TradeConfirmer executes a quotation
exactly once: a ``SET NX`` key per quotation id rejects repeats, whether
they come from a double click or a retry after a network error.

Redis keys:
  ``swap_quote:{id}``    active quotation (TTL = quote window)
  ``swap_confirm:{id}``  confirm de-duplication marker
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Awaitable, Callable

from pydantic import ValidationError

from app.config import settings
from app.schemas.quidax import QuidaxQuotation, QuidaxSwapTransaction
from app.services.fee_service import parse_amount
from app.services.quidax_client import QuidaxAPIError, QuidaxClient, get_quidax_client

logger = logging.getLogger(__name__)

QUOTE_KEY_PREFIX = "swap_quote:"
CONFIRM_KEY_PREFIX = "swap_confirm:"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class QuoteRequestFailed(Exception):
    """The exchange refused or garbled a quotation request."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ConfirmFailed(Exception):
    """A trade confirmation did not go through."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class QuotationExpired(ConfirmFailed):
    """The quotation's window has closed; it can no longer be confirmed."""


class DuplicateConfirmation(ConfirmFailed):
    """The quotation has already been submitted for confirmation."""


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Quotation:
    """A time-bounded price commitment issued by the exchange."""
    id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    quoted_price: Decimal
    to_amount: Decimal
    issued_at: datetime
    expires_at: datetime
    idempotency_key: str
    confirmable: bool = True

    def seconds_remaining(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return max(0, math.ceil((self.expires_at - now).total_seconds()))

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def to_json(self, user_id: str) -> str:
        data = {k: str(v) if not isinstance(v, bool) else v for k, v in asdict(self).items()}
        data["issued_at"] = self.issued_at.isoformat()
        data["expires_at"] = self.expires_at.isoformat()
        data["user_id"] = user_id
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> tuple["Quotation", str]:
        """Return ``(quotation, user_id)`` from a cached record."""
        data = json.loads(raw)
        user_id = data.pop("user_id")
        quotation = cls(
            id=data["id"],
            from_currency=data["from_currency"],
            to_currency=data["to_currency"],
            from_amount=Decimal(data["from_amount"]),
            quoted_price=Decimal(data["quoted_price"]),
            to_amount=Decimal(data["to_amount"]),
            issued_at=datetime.fromisoformat(data["issued_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            idempotency_key=data["idempotency_key"],
            confirmable=data.get("confirmable", True),
        )
        return quotation, user_id


@dataclass(frozen=True)
class TradeResult:
    """An executed swap as reported by the exchange."""
    id: str
    quotation_id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    received_amount: Decimal
    execution_price: Decimal
    status: str
    created_at: datetime | None
    idempotency_key: str


# ---------------------------------------------------------------------------
# Quotation requester
# ---------------------------------------------------------------------------


class QuotationService:
    """Requests quotations from the exchange and tracks the live ones."""

    def __init__(self, redis, client: QuidaxClient | None = None, window_seconds: int | None = None):
        self.redis = redis
        self.client = client or get_quidax_client()
        self.window_seconds = window_seconds or settings.QUOTE_COUNTDOWN_SECONDS

    @staticmethod
    def _check_request(from_currency: str, to_currency: str, from_amount: str) -> None:
        if not from_currency or not to_currency:
            raise ValueError("from_currency and to_currency are required")
        amount = parse_amount(from_amount)
        if amount is None or amount <= 0:
            raise ValueError(f"from_amount must be a positive decimal, got {from_amount!r}")

    def _build(self, data, confirmable: bool) -> Quotation:
        try:
            upstream = QuidaxQuotation.model_validate(data)
        except ValidationError as exc:
            logger.error("Malformed quotation from Quidax: %s", exc.errors())
            raise QuoteRequestFailed("Malformed quotation response from exchange") from exc

        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self.window_seconds)
        if upstream.expires_at is not None:
            upstream_expiry = upstream.expires_at
            if upstream_expiry.tzinfo is None:
                upstream_expiry = upstream_expiry.replace(tzinfo=timezone.utc)
            expires_at = min(expires_at, upstream_expiry)

        return Quotation(
            id=upstream.id,
            from_currency=upstream.from_currency.upper(),
            to_currency=upstream.to_currency.upper(),
            from_amount=upstream.from_amount,
            quoted_price=upstream.quoted_price,
            to_amount=upstream.to_amount,
            issued_at=issued_at,
            expires_at=expires_at,
            idempotency_key=str(uuid.uuid4()),
            confirmable=confirmable,
        )

    async def request_quote(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> Quotation:
        """
        Obtain a confirmable quotation for *from_amount* of *from_currency*.

        The quotation is cached under ``swap_quote:{id}`` for the quote
        window. Raises QuoteRequestFailed on any upstream problem; there is
        no automatic retry.
        """
        self._check_request(from_currency, to_currency, from_amount)
        try:
            data = await self.client.create_swap_quotation(
                user_id, from_currency.lower(), to_currency.lower(), str(from_amount),
            )
        except QuidaxAPIError as exc:
            raise QuoteRequestFailed(str(exc)) from exc

        quotation = self._build(data, confirmable=True)
        ttl = max(1, quotation.seconds_remaining(quotation.issued_at))
        await self.redis.setex(
            f"{QUOTE_KEY_PREFIX}{quotation.id}", ttl, quotation.to_json(user_id),
        )
        logger.info(
            "Quotation %s issued: %s %s -> %s %s @ %s (valid %ss)",
            quotation.id, quotation.from_amount, quotation.from_currency,
            quotation.to_amount, quotation.to_currency, quotation.quoted_price, ttl,
        )
        return quotation

    async def request_indicative_quote(
        self, user_id: str, from_currency: str, to_currency: str, from_amount: str,
    ) -> Quotation:
        """A temporary quotation for display only; it cannot be confirmed."""
        self._check_request(from_currency, to_currency, from_amount)
        try:
            data = await self.client.create_temporary_swap_quotation(
                user_id, from_currency.lower(), to_currency.lower(), str(from_amount),
            )
        except QuidaxAPIError as exc:
            raise QuoteRequestFailed(str(exc)) from exc
        return self._build(data, confirmable=False)

    async def get_active_quote(self, user_id: str, quotation_id: str) -> Quotation | None:
        """Return the cached quotation if it belongs to *user_id* and is still live."""
        raw = await self.redis.get(f"{QUOTE_KEY_PREFIX}{quotation_id}")
        if raw is None:
            return None
        quotation, owner = Quotation.from_json(raw)
        if owner != user_id or quotation.is_expired():
            return None
        return quotation

    async def discard(self, quotation_id: str) -> None:
        await self.redis.delete(f"{QUOTE_KEY_PREFIX}{quotation_id}")


# ---------------------------------------------------------------------------
# Trade confirmer
# ---------------------------------------------------------------------------


class TradeConfirmer:
    """Executes an accepted quotation and triggers a balance refresh."""

    def __init__(
        self,
        redis,
        client: QuidaxClient | None = None,
        on_success: Callable[[], Awaitable[None]] | None = None,
    ):
        self.redis = redis
        self.client = client or get_quidax_client()
        self.on_success = on_success

    async def confirm(self, user_id: str, quotation: Quotation, now: datetime | None = None) -> TradeResult:
        """
        Confirm *quotation* with the exchange.

        Raises QuotationExpired if the window has closed, DuplicateConfirmation
        if the quotation was already submitted, and ConfirmFailed for upstream
        errors. The balance refresh runs only after a successful trade.
        """
        if not quotation.confirmable:
            raise ConfirmFailed("Indicative quotations cannot be confirmed")
        if quotation.is_expired(now):
            raise QuotationExpired("Quotation has expired")

        acquired = await self.redis.set(
            f"{CONFIRM_KEY_PREFIX}{quotation.id}",
            quotation.idempotency_key,
            nx=True,
            ex=settings.CONFIRM_LOCK_TTL_SECONDS,
        )
        if not acquired:
            logger.warning("Duplicate confirm rejected for quotation %s", quotation.id)
            raise DuplicateConfirmation("Quotation has already been submitted")

        try:
            data = await self.client.confirm_swap_quotation(user_id, quotation.id)
        except QuidaxAPIError as exc:
            raise ConfirmFailed(str(exc)) from exc

        try:
            swap = QuidaxSwapTransaction.model_validate(data)
        except ValidationError as exc:
            logger.error("Malformed confirmation from Quidax: %s", exc.errors())
            raise ConfirmFailed("Malformed confirmation response from exchange") from exc

        await self.redis.delete(f"{QUOTE_KEY_PREFIX}{quotation.id}")
        logger.info(
            "Quotation %s confirmed as swap %s (%s)", quotation.id, swap.id, swap.status,
        )

        if self.on_success is not None:
            await self.on_success()

        return TradeResult(
            id=swap.id,
            quotation_id=quotation.id,
            from_currency=swap.from_currency.upper(),
            to_currency=swap.to_currency.upper(),
            from_amount=swap.from_amount,
            received_amount=swap.received_amount,
            execution_price=swap.execution_price,
            status=swap.status,
            created_at=swap.created_at,
            idempotency_key=quotation.idempotency_key,
        )
