#!/usr/bin/env python3
"""Replay a saved BitGo webhook payload.

Runs the payload through the same reconciliation as the live webhook,
so replaying an already-processed delivery changes nothing.

Usage:
    python scripts/replay_webhook.py payload.json [--dry-run]

Options:
    --dry-run  Only show what the payload normalizes to
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

load_dotenv()

from paydail.api.deps import get_reconciler
from paydail.ledger.database import close_db, init_db
from paydail.webhook.events import describe_payload, parse_transfer_event

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def replay(payload: dict, dry_run: bool = False) -> int:
    event = parse_transfer_event(payload)
    logger.info(
        f"Payload: coin={event.coin} txid={event.txid} transfer_id={event.transfer_id} "
        f"state={event.state} entries={len(event.entries)}"
    )
    for entry in event.entries:
        logger.info(f"  {entry.address}: {entry.value}")

    if dry_run:
        if not event.entries:
            logger.info(f"No entries in payload: {describe_payload(payload)}")
        logger.info("DRY RUN MODE - No changes made")
        return 0

    await init_db()
    try:
        result = await get_reconciler().handle_payload(payload)
    finally:
        await close_db()

    if result.ignored:
        logger.warning("Payload ignored")
        return 1

    for outcome in result.outcomes:
        logger.info(
            f"  {outcome.address}: {outcome.action}"
            f"{f' ({outcome.reason})' if outcome.reason else ''} "
            f"status={outcome.status} credited=₦{outcome.credited}"
        )
    logger.info(f"Processed {result.processed} of {len(result.outcomes)} entries")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay a BitGo webhook payload")
    parser.add_argument("payload", type=Path, help="JSON file holding the webhook body")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done")
    args = parser.parse_args()

    try:
        payload = json.loads(args.payload.read_text())
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read payload {args.payload}: {e}")
        return 2

    if not isinstance(payload, dict):
        logger.error("Payload must be a JSON object")
        return 2

    return asyncio.run(replay(payload, dry_run=args.dry_run))


if __name__ == "__main__":
    sys.exit(main())
