"""Market prices and admin naira rates."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paydail.api.deps import get_coingecko
from paydail.ledger.database import get_session_factory, unit_of_work
from paydail.ledger.repository import LedgerRepository
from paydail.pricing.coingecko import CoinGeckoClient
from paydail.pricing.converter import naira_rates_from_row

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/markets")
async def get_markets(
    coingecko: CoinGeckoClient = Depends(get_coingecko),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Market snapshots for BTC, ETH, USDT and BNB plus naira-per-USD rates.

    Upstream failures return empty markets with a 200.
    """
    updated_at = datetime.now(timezone.utc).isoformat()
    try:
        markets = await coingecko.fetch_markets()
        async with unit_of_work(session_factory) as session:
            row = await LedgerRepository(session).get_admin_rates()
    except Exception as e:
        logger.warning(f"Market data unavailable: {e}")
        return {"markets": {}, "updatedAt": updated_at}

    rates = naira_rates_from_row(row)
    return {
        "markets": markets,
        "updatedAt": updated_at,
        "nairaRates": {asset: float(rate) for asset, rate in rates.items()},
    }
