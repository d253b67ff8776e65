"""CoinGecko price index client."""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from paydail.config import Settings, get_settings

logger = logging.getLogger(__name__)

COINGECKO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
    "BNB": "binancecoin",
}


class CoinGeckoClient:
    """Spot prices and market snapshots for the supported assets."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self.settings.coingecko_api_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        if self.settings.coingecko_api_key:
            return {"x-cg-demo-api-key": self.settings.coingecko_api_key}
        return {}

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self.settings.price_fetch_timeout,
        ) as client:
            response = await client.get(
                f"{self.base_url}{path}",
                params=params,
                headers=self._headers(),
            )
            response.raise_for_status()
            return response.json()

    async def fetch_usd_price(self, asset: str) -> Decimal:
        """Fetch the current USD price for an asset.

        Raises:
            KeyError: for assets without a CoinGecko id
            httpx.HTTPError: on network failure or non-2xx
            ValueError: if the response carries no usable price
        """
        coin_id = COINGECKO_IDS[asset.upper()]
        data = await self._get("/simple/price", {"ids": coin_id, "vs_currencies": "usd"})

        raw = data.get(coin_id, {}).get("usd") if isinstance(data, dict) else None
        if raw is None or isinstance(raw, bool):
            raise ValueError(f"CoinGecko price missing for {coin_id}")
        usd = Decimal(str(raw))
        if not usd.is_finite() or usd <= 0:
            raise ValueError(f"CoinGecko price invalid for {coin_id}: {raw}")
        return usd

    async def fetch_markets(self) -> dict[str, dict]:
        """Fetch market snapshots keyed by asset symbol."""
        data = await self._get(
            "/coins/markets",
            {
                "vs_currency": "usd",
                "ids": ",".join(COINGECKO_IDS.values()),
                "order": "market_cap_desc",
                "per_page": len(COINGECKO_IDS),
                "page": 1,
                "sparkline": "false",
                "price_change_percentage": "24h",
            },
        )

        wanted = {asset.lower(): asset for asset in COINGECKO_IDS}
        markets: dict[str, dict] = {}
        for market in data if isinstance(data, list) else []:
            symbol = str(market.get("symbol", "")).lower()
            if symbol in wanted:
                markets[wanted[symbol]] = {
                    "symbol": market.get("symbol"),
                    "name": market.get("name"),
                    "image": market.get("image"),
                    "current_price": market.get("current_price"),
                    "price_change_percentage_24h": market.get("price_change_percentage_24h"),
                }
        return markets
