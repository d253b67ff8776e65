"""Provider factory for the custodial wallet provider."""

import logging

from paydail.config import get_settings
from paydail.providers.base import ProviderAdapter
from paydail.providers.bitgo import BitGoProvider
from paydail.providers.dryrun import DryRunProvider

logger = logging.getLogger(__name__)

# Singleton instance
_provider_instance: ProviderAdapter | None = None


def get_provider() -> ProviderAdapter:
    """Get the configured custodial wallet provider.

    BitGo is used when BITGO_COIN_BASE_URL and BITGO_SECRET_KEY are set;
    otherwise the dry-run provider.
    """
    global _provider_instance

    if _provider_instance is not None:
        return _provider_instance

    settings = get_settings()
    if settings.has_bitgo:
        _provider_instance = BitGoProvider(settings)
    else:
        logger.warning("BitGo not configured - using dry-run provider")
        _provider_instance = DryRunProvider()

    return _provider_instance


def reset_provider() -> None:
    """Reset provider instance (useful for testing)."""
    global _provider_instance
    _provider_instance = None
