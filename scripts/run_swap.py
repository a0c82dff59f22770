"""
Manual swap run — drives one swap form end to end from the command line.

Usage:
    python scripts/run_swap.py [FROM] [TO] [AMOUNT] [DENOMINATION]
    python scripts/run_swap.py USDT NGN 100 CRYPTO

Uses the configured Quidax client (the mock exchange unless QUIDAX_MOCK=false)
and the configured Redis. Useful for checking quotes and fees without a UI.
"""

import asyncio
import sys

from app.redis_client import redis
from app.swap.controller import SwapFormController
from app.swap.conversion import Denomination
from app.swap.gateway import ServiceGateway

QUIDAX_USER_ID = "qdx-dev-0001"


async def main(from_currency: str, to_currency: str, amount: str, denomination: str) -> None:
    form = SwapFormController(ServiceGateway(QUIDAX_USER_ID, redis), auto_tick=False)
    await form.open()
    try:
        await form.select_currencies(from_currency, to_currency)
        form.set_denomination(Denomination(denomination.upper()))
        form.set_amount(amount)

        print(f"Balances: {form.balances}")
        print(f"Rate {from_currency}/{to_currency}: {form.rate.rate}")

        estimate = form.estimate()
        if estimate is not None:
            print("\n=== Estimate ===")
            print(f"Base amount:   {estimate.base_amount} {from_currency.upper()}")
            print(f"NGN value:     {estimate.ngn_value:.2f}")
            print(f"USD value:     {estimate.usd_value:.2f}")
            print(f"Tier:          {estimate.fees.tier} ({estimate.fees.fee_percentage}%)")
            print(f"Service fee:   {estimate.fees.service_fee}")
            print(f"Network fee:   {estimate.fees.network_fee}")
            print(f"Total fee:     {estimate.fees.total_fee}")

        quotation = await form.request_quote()
        if quotation is None:
            print(f"\nNo quote: {form.error.message if form.error else form.notices[-1].message}")
            return

        preview = form.preview()
        print("\n=== Quotation ===")
        print(f"{preview.from_amount} {preview.from_currency} -> {preview.to_amount} {preview.to_currency}")
        print(f"Quoted price: {preview.quoted_price}, valid {preview.seconds_remaining}s")

        result = await form.confirm()
        if result is None:
            print(f"\nConfirm failed: {form.notices[-1].message}")
            return
        print(f"\nSwap {result.id}: {result.status}, received {result.received_amount} {result.to_currency}")
        print(f"Balances after: {form.balances}")
    finally:
        await form.close()
        await redis.aclose()


if __name__ == "__main__":
    args = sys.argv[1:] + ["USDT", "NGN", "100", "CRYPTO"][len(sys.argv) - 1:]
    asyncio.run(main(*args[:4]))
