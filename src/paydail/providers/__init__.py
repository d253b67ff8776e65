"""Custodial wallet provider adapters."""

from paydail.providers.base import Address, ProviderAdapter, ProviderError
from paydail.providers.factory import get_provider

__all__ = ["Address", "ProviderAdapter", "ProviderError", "get_provider"]
