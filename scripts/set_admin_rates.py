#!/usr/bin/env python3
"""Record admin naira-per-USD rates.

Conversion reads the oldest admin rate row, so the first run sets the
rates in effect; later rows are history only.

Usage:
    python scripts/set_admin_rates.py --usdt 1650 --btc 1640
    python scripts/set_admin_rates.py --show
"""

import argparse
import asyncio
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

load_dotenv()

from paydail.ledger.database import close_db, get_db, init_db
from paydail.ledger.repository import LedgerRepository
from paydail.pricing.converter import naira_rates_from_row


def positive_decimal(value: str) -> Decimal:
    try:
        rate = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if not rate.is_finite() or rate <= 0:
        raise argparse.ArgumentTypeError(f"rate must be positive: {value}")
    return rate


async def set_rates(args) -> None:
    await init_db()
    try:
        async with get_db() as session:
            repo = LedgerRepository(session)
            if not args.show:
                await repo.add_admin_rates(
                    usdt_rate=args.usdt,
                    btc_rate=args.btc,
                    eth_rate=args.eth,
                    bnb_rate=args.bnb,
                )
                print("Admin rate row added")
            row = await repo.get_admin_rates()

        print("Rates in effect (NGN per USD):")
        for asset, rate in naira_rates_from_row(row).items():
            print(f"  {asset}: {rate}")
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Set admin naira rates")
    parser.add_argument("--usdt", type=positive_decimal, help="NGN per USD for USDT")
    parser.add_argument("--btc", type=positive_decimal, help="NGN per USD for BTC")
    parser.add_argument("--eth", type=positive_decimal, help="NGN per USD for ETH")
    parser.add_argument("--bnb", type=positive_decimal, help="NGN per USD for BNB")
    parser.add_argument("--show", action="store_true", help="Only print the rates in effect")
    args = parser.parse_args()

    if not args.show and not any((args.usdt, args.btc, args.eth, args.bnb)):
        parser.error("give at least one rate, or --show")

    asyncio.run(set_rates(args))
