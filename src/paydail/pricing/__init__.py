"""Spot prices, admin naira rates and deposit valuation."""

from typing import Optional

from paydail.config import get_settings
from paydail.pricing.cache import PriceCache, PriceUnavailableError
from paydail.pricing.coingecko import CoinGeckoClient
from paydail.pricing.converter import (
    DEFAULT_NAIRA_RATES,
    AdminRateSource,
    FiatConversion,
    RateConverter,
)

# Singleton cache shared by every request in the process
_price_cache: Optional[PriceCache] = None


def get_price_cache() -> PriceCache:
    """Get the process-wide spot price cache backed by CoinGecko."""
    global _price_cache
    if _price_cache is None:
        settings = get_settings()
        client = CoinGeckoClient(settings)
        _price_cache = PriceCache(
            client.fetch_usd_price,
            ttl_seconds=settings.price_cache_ttl_seconds,
        )
    return _price_cache


def reset_price_cache() -> None:
    """Drop the process-wide cache (useful for testing)."""
    global _price_cache
    _price_cache = None


__all__ = [
    "DEFAULT_NAIRA_RATES",
    "AdminRateSource",
    "CoinGeckoClient",
    "FiatConversion",
    "PriceCache",
    "PriceUnavailableError",
    "RateConverter",
    "get_price_cache",
    "reset_price_cache",
]
