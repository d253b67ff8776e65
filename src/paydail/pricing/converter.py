"""Asset amount -> naira conversion."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paydail.ledger.database import get_session_factory
from paydail.ledger.models import AdminRate
from paydail.ledger.repository import LedgerRepository
from paydail.pricing.cache import PriceCache

logger = logging.getLogger(__name__)

RateSource = Callable[[str], Awaitable[Decimal]]

KOBO = Decimal("0.01")

# Used when no admin rate row exists or a rate column is empty
DEFAULT_NAIRA_RATES: dict[str, Decimal] = {
    "USDT": Decimal("1650"),
    "BTC": Decimal("1640"),
    "ETH": Decimal("1640"),
    "BNB": Decimal("1610"),
}


def to_kobo(value) -> Decimal:
    """Round a naira value to whole kobo, the precision balances are kept at."""
    return Decimal(value or 0).quantize(KOBO, rounding=ROUND_HALF_UP)


def naira_rates_from_row(row: Optional[AdminRate]) -> dict[str, Decimal]:
    """Naira-per-USD rate per asset, falling back to the defaults."""
    configured = {
        "USDT": row.usdt_rate if row else None,
        "BTC": row.btc_rate if row else None,
        "ETH": row.eth_rate if row else None,
        "BNB": row.bnb_rate if row else None,
    }
    return {
        asset: Decimal(value) if value is not None else DEFAULT_NAIRA_RATES[asset]
        for asset, value in configured.items()
    }


class AdminRateSource:
    """Reads the naira-per-USD rate from the oldest admin rate row."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    async def __call__(self, asset: str) -> Decimal:
        factory = self._session_factory or get_session_factory()
        async with factory() as session:
            row = await LedgerRepository(session).get_admin_rates()

        rate = naira_rates_from_row(row).get(asset.upper())
        if rate is None or not rate.is_finite() or rate <= 0:
            raise ValueError(f"Admin rate invalid for {asset}: {rate}")
        return rate


@dataclass
class FiatConversion:
    """Breakdown of one asset amount valued in naira."""

    asset: str
    amount: Decimal
    usd_price: Decimal
    naira_per_usd: Decimal
    gross: Decimal
    fee: Decimal

    @property
    def net(self) -> Decimal:
        return self.gross - self.fee


class RateConverter:
    """Values asset amounts in naira: amount x USD spot x naira-per-USD, less a fee."""

    def __init__(
        self,
        price_cache: PriceCache,
        rate_source: RateSource,
        fee_rate: Decimal = Decimal("0.01"),
    ):
        self.price_cache = price_cache
        self.rate_source = rate_source
        self.fee_rate = Decimal(fee_rate)

    async def convert(self, asset: str, amount: Decimal) -> FiatConversion:
        """Full conversion breakdown. Raises on any pricing failure."""
        asset = asset.upper()
        naira_per_usd = await self.rate_source(asset)
        usd_price = await self.price_cache.get_usd_price(asset)

        gross = amount * usd_price * naira_per_usd
        if not gross.is_finite() or gross <= 0:
            gross = Decimal("0")
        gross = to_kobo(gross)
        fee = to_kobo(gross * self.fee_rate)

        return FiatConversion(
            asset=asset,
            amount=amount,
            usd_price=usd_price,
            naira_per_usd=naira_per_usd,
            gross=gross,
            fee=fee,
        )

    async def net_naira(self, asset: str, amount: Decimal) -> Decimal:
        """Net naira value, or 0 if pricing fails.

        Pricing never blocks recording a deposit.
        """
        try:
            conversion = await self.convert(asset, amount)
        except Exception as e:
            logger.error(f"Naira conversion failed for {amount} {asset}: {e}")
            return Decimal("0")
        return conversion.net
