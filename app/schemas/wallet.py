"""
Pydantic schemas for wallet balances.
"""

from decimal import Decimal

from pydantic import BaseModel


class WalletBalance(BaseModel):
    currency: str
    balance: Decimal
    locked: Decimal = Decimal("0")


class WalletResponse(BaseModel):
    wallets: list[WalletBalance]
