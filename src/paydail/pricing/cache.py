"""Process-wide spot price cache with stale-on-error fallback."""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

PriceFetcher = Callable[[str], Awaitable[Decimal]]


class PriceUnavailableError(Exception):
    """Raised when no live or cached price exists for an asset."""

    pass


@dataclass
class CachedPrice:
    usd: Decimal
    fetched_at: float


class PriceCache:
    """USD spot prices per asset with a freshness window.

    Fresh entries are served from memory. Expired or missing entries are
    refetched; if the refetch fails, a stale entry is served instead and
    only an empty cache raises. Concurrent misses may fetch twice.
    """

    def __init__(
        self,
        fetch_price: PriceFetcher,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_price = fetch_price
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedPrice] = {}

    def peek(self, asset: str) -> Optional[CachedPrice]:
        """Cached entry for an asset, fresh or not."""
        return self._entries.get(asset.upper())

    def clear(self) -> None:
        self._entries.clear()

    async def get_usd_price(self, asset: str) -> Decimal:
        """Get the USD price of one unit of ``asset`` (USDT is pegged at 1)."""
        asset = asset.upper()
        if asset == "USDT":
            return Decimal("1")

        cached = self._entries.get(asset)
        now = self._clock()
        if cached is not None and now - cached.fetched_at < self.ttl_seconds:
            return cached.usd

        try:
            usd = Decimal(await self._fetch_price(asset))
            if not usd.is_finite() or usd <= 0:
                raise ValueError(f"invalid price {usd}")
        except Exception as e:
            if cached is not None:
                logger.warning(f"Price refresh for {asset} failed, using stale value: {e}")
                return cached.usd
            raise PriceUnavailableError(f"No USD price for {asset}: {e}") from e

        self._entries[asset] = CachedPrice(usd=usd, fetched_at=now)
        return usd
