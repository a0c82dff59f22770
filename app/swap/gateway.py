"""
Gateway between the swap form controller and the backing services.

The controller only knows the SwapGateway protocol. ServiceGateway binds
one user's Quidax sub-account to the in-process services; tests and
other front ends can supply their own implementation.
"""

from decimal import Decimal
from typing import Protocol

from app.services.quidax_client import QuidaxClient
from app.services.rate_service import RateService
from app.services.swap_service import Quotation, QuotationService, TradeConfirmer, TradeResult
from app.services.wallet_service import WalletService


class SwapGateway(Protocol):
    async def get_rate(self, from_currency: str, to_currency: str) -> Decimal: ...

    async def get_usd_ngn_rate(self) -> Decimal: ...

    async def get_balances(self) -> dict[str, Decimal]: ...

    async def request_quote(self, from_currency: str, to_currency: str, from_amount: str) -> Quotation: ...

    async def confirm(self, quotation: Quotation) -> TradeResult: ...


class ServiceGateway:
    """SwapGateway over RateService, QuotationService, TradeConfirmer and WalletService."""

    def __init__(self, user_id: str, redis, client: QuidaxClient | None = None):
        self.user_id = user_id
        self.rates = RateService(redis, client)
        self.quotes = QuotationService(redis, client)
        self.confirmer = TradeConfirmer(redis, client)
        self.wallets = WalletService(client)

    async def get_rate(self, from_currency: str, to_currency: str) -> Decimal:
        quote = await self.rates.get_rate(from_currency, to_currency)
        return quote.rate

    async def get_usd_ngn_rate(self) -> Decimal:
        return await self.rates.get_usd_ngn_rate()

    async def get_balances(self) -> dict[str, Decimal]:
        return await self.wallets.get_balance_map(self.user_id)

    async def request_quote(self, from_currency: str, to_currency: str, from_amount: str) -> Quotation:
        return await self.quotes.request_quote(self.user_id, from_currency, to_currency, from_amount)

    async def confirm(self, quotation: Quotation) -> TradeResult:
        return await self.confirmer.confirm(self.user_id, quotation)
