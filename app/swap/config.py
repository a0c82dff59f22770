"""
Swap engine configuration constants.

Defines the quote window, polling intervals, supported currencies, and
the per-asset trade-size limits the swap form enforces.
"""

from decimal import Decimal

from app.config import settings

# Quote lifetime, shared by every swap surface
QUOTE_COUNTDOWN_SECONDS = settings.QUOTE_COUNTDOWN_SECONDS

# Polling intervals while a swap form is open
RATE_REFRESH_INTERVAL_SECONDS = settings.RATE_REFRESH_INTERVAL_SECONDS
BALANCE_REFRESH_INTERVAL_SECONDS = settings.BALANCE_REFRESH_INTERVAL_SECONDS

SUPPORTED_CURRENCIES: dict[str, str] = {
    "NGN": "Nigerian Naira",
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "USDT": "Tether",
    "USDC": "USD Coin",
    "BNB": "Binance Coin",
    "SOL": "Solana",
    "MATIC": "Polygon",
    "XRP": "Ripple",
    "DOGE": "Dogecoin",
    "ADA": "Cardano",
    "DOT": "Polkadot",
    "LTC": "Litecoin",
    "LINK": "Chainlink",
    "BCH": "Bitcoin Cash",
    "AAVE": "Aave",
    "ALGO": "Algorand",
    "NEAR": "NEAR Protocol",
    "FIL": "Filecoin",
    "SAND": "The Sandbox",
    "MANA": "Decentraland",
    "APE": "ApeCoin",
    "SHIB": "Shiba Inu",
    "SUI": "Sui",
    "INJ": "Injective",
    "ARB": "Arbitrum",
    "TON": "Toncoin",
    "RNDR": "Render Token",
    "STX": "Stacks",
    "GRT": "The Graph",
}

FIAT_CURRENCIES = frozenset({"NGN", "USD"})

# Amounts entered in NGN
MIN_NGN = Decimal("1000")
MAX_NGN = Decimal("10000000")

# Minimum NGN value of any trade, whatever the input denomination
MIN_TRADE_VALUE_NGN = Decimal("1000")

# Amounts entered in the source asset
MIN_CRYPTO: dict[str, Decimal] = {
    "BTC": Decimal("0.0001"),
    "ETH": Decimal("0.01"),
    "USDT": Decimal("10"),
    "USDC": Decimal("10"),
    "DOGE": Decimal("100"),
}
MAX_CRYPTO: dict[str, Decimal] = {
    "BTC": Decimal("100"),
    "ETH": Decimal("1000"),
    "USDT": Decimal("100000"),
    "USDC": Decimal("100000"),
    "DOGE": Decimal("1000000"),
}


def decimals_for(currency: str) -> int:
    """Display precision: 2 places for fiat, 8 for crypto."""
    return 2 if currency.upper() in FIAT_CURRENCIES else 8
