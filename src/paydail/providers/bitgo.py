"""BitGo custodial wallet provider.

Docs: https://developers.bitgo.com/api/v2
"""

import logging
from typing import Any, Optional

import httpx

from paydail.config import ProviderConfigError, Settings, get_settings
from paydail.providers.base import Address, ProviderAdapter, ProviderError
from paydail.webhook.assets import resolve_asset

logger = logging.getLogger(__name__)


class BitGoProvider(ProviderAdapter):
    """BitGo provider for wallet addresses and transfer lookups."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize BitGo provider.

        Args:
            settings: Settings override (defaults to the cached settings)
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def name(self) -> str:
        return "bitgo"

    def _client(self, timeout: Optional[float]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout)

    @staticmethod
    def _auth_headers(secret_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {secret_key}"}

    async def validate_config(self) -> bool:
        """Check credentials and that at least one wallet is configured."""
        return self.settings.has_bitgo and any(self.settings.wallet_ids().values())

    async def fetch_transfer(self, coin: str, transfer_id: str) -> dict:
        """GET /api/v2/{coin}/wallet/{walletId}/transfer/{transferId}."""
        asset = resolve_asset(coin, self.settings.coin_overrides())
        if asset is None:
            raise ProviderConfigError(f"Unsupported BitGo coin: {coin}")

        config = self.settings.get_bitgo_config(asset)
        url = f"{config.base_url}/api/v2/{coin}/wallet/{config.wallet_id}/transfer/{transfer_id}"

        data = await self._request(
            "GET",
            url,
            headers=self._auth_headers(config.secret_key),
            timeout=self.settings.bitgo_transfer_timeout,
        )
        if not isinstance(data, dict):
            raise ProviderError("BitGo transfer response is not an object", data=data)
        return data

    async def create_deposit_address(self, user_id: int, asset: str) -> Address:
        """POST /api/v2/{coin}/wallet/{walletId}/address labelled with the user id."""
        asset = asset.upper()
        config = self.settings.get_bitgo_config(asset)
        if not config.coin:
            raise ProviderConfigError(f"BitGo wallet/coin missing for {asset}")

        url = f"{config.base_url}/api/v2/{config.coin}/wallet/{config.wallet_id}/address"
        data = await self._request(
            "POST",
            url,
            headers=self._auth_headers(config.secret_key),
            json={"label": str(user_id)},
            timeout=self.settings.bitgo_transfer_timeout,
        )

        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, str) or not address:
            raise ProviderError("BitGo did not return an address", data=data)

        return Address(asset=asset, address=address)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        timeout = kwargs.pop("timeout", None)
        try:
            async with self._client(timeout) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json()
            except ValueError:
                body = e.response.text
            raise ProviderError(
                f"BitGo {method} failed: {e.response.status_code}",
                status_code=e.response.status_code,
                data=body,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"BitGo {method} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"BitGo returned invalid JSON: {e}") from e
