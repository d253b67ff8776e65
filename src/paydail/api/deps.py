"""FastAPI dependencies shared by the routers."""

from paydail.config import get_settings
from paydail.pricing import AdminRateSource, CoinGeckoClient, RateConverter, get_price_cache
from paydail.providers import ProviderAdapter, get_provider
from paydail.webhook.reconciler import DepositReconciler


def get_reconciler() -> DepositReconciler:
    """Reconciler wired to the global database, price cache and provider."""
    settings = get_settings()
    converter = RateConverter(
        price_cache=get_price_cache(),
        rate_source=AdminRateSource(),
        fee_rate=settings.deposit_fee_rate,
    )
    return DepositReconciler(
        converter=converter,
        provider=get_provider(),
        coin_overrides=settings.coin_overrides(),
    )


def get_wallet_provider() -> ProviderAdapter:
    return get_provider()


def get_coingecko() -> CoinGeckoClient:
    return CoinGeckoClient(get_settings())
