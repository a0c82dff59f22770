"""
Wallet balances for a Quidax sub-account.

Balances are read-mostly: they are fetched wholesale and refreshed
wholesale after a trade, never patched in place.
"""

import logging
from decimal import Decimal

from pydantic import ValidationError

from app.schemas.quidax import QuidaxWallet
from app.services.quidax_client import QuidaxAPIError, QuidaxClient, get_quidax_client

logger = logging.getLogger(__name__)


class WalletUnavailable(Exception):
    """Raised when balances cannot be loaded from the exchange."""


class WalletService:
    """Loads wallet balances from the exchange."""

    def __init__(self, client: QuidaxClient | None = None):
        self.client = client or get_quidax_client()

    async def get_balances(self, user_id: str, positive_only: bool = True) -> list[QuidaxWallet]:
        """
        Return the user's wallets, optionally only those with a positive balance.
        """
        try:
            raw = await self.client.get_wallets(user_id)
        except QuidaxAPIError as exc:
            raise WalletUnavailable(str(exc)) from exc

        wallets = []
        for item in raw or []:
            try:
                wallet = QuidaxWallet.model_validate(item)
            except ValidationError:
                logger.error("Skipping malformed wallet entry for user %s: %r", user_id, item)
                continue
            if positive_only and wallet.balance <= 0:
                continue
            wallets.append(wallet.model_copy(update={"currency": wallet.currency.upper()}))
        return wallets

    async def get_balance_map(self, user_id: str) -> dict[str, Decimal]:
        """Balances keyed by upper-case currency code."""
        return {w.currency: w.balance for w in await self.get_balances(user_id, positive_only=False)}
