"""Custodial wallet provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from paydail.config import ProviderConfigError

__all__ = ["Address", "ProviderAdapter", "ProviderConfigError", "ProviderError"]


class ProviderError(Exception):
    """Raised when a provider call fails (network error, timeout, non-2xx)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.data = data


@dataclass
class Address:
    """Deposit address returned by provider."""

    asset: str
    address: str
    network: Optional[str] = None


class ProviderAdapter(ABC):
    """Abstract base class for custodial wallet providers."""

    @abstractmethod
    async def create_deposit_address(self, user_id: int, asset: str) -> Address:
        """Create a deposit address for a user and asset.

        Args:
            user_id: Internal user ID (used as the address label)
            asset: Asset symbol (BTC, ETH, USDT, BNB)

        Returns:
            Address object with the deposit address
        """
        raise NotImplementedError()

    @abstractmethod
    async def fetch_transfer(self, coin: str, transfer_id: str) -> dict:
        """Fetch full transfer details by provider transfer id.

        Raises:
            ProviderError: on network failure, timeout or non-2xx response
            ProviderConfigError: if the provider is not configured for the coin
        """
        raise NotImplementedError()

    @abstractmethod
    async def validate_config(self) -> bool:
        """Validate provider configuration.

        Returns:
            True if configuration is valid
        """
        raise NotImplementedError()

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        raise NotImplementedError()
