"""Dry-run provider for development (no real addresses, no transfer lookups)."""

from paydail.providers.base import Address, ProviderAdapter, ProviderError


class DryRunProvider(ProviderAdapter):
    """Simulated provider that generates deterministic fake addresses."""

    @property
    def name(self) -> str:
        return "dryrun"

    async def create_deposit_address(self, user_id: int, asset: str) -> Address:
        # Deterministic fake address for dev/test
        addr = f"sim:{asset.lower()}:{user_id:06d}"
        return Address(asset=asset.upper(), address=addr)

    async def fetch_transfer(self, coin: str, transfer_id: str) -> dict:
        raise ProviderError(f"Dry-run provider cannot fetch transfer {transfer_id}")

    async def validate_config(self) -> bool:
        """Always valid for dry-run."""
        return True
