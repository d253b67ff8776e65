"""Application configuration using pydantic-settings.

BitGo custodial wallet settings are keyed per supported asset
(BTC, ETH, USDT, BNB).
"""

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_ASSETS = ("BTC", "ETH", "USDT", "BNB")


class ProviderConfigError(Exception):
    """Raised when custodial provider settings are missing or incomplete."""

    pass


@dataclass
class BitGoConfig:
    """Resolved BitGo settings for one asset."""

    base_url: str
    secret_key: str
    wallet_id: str
    coin: Optional[str] = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/paydail.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Admin
    # ======================
    admin_token: str = Field(default="", description="Admin API token for protected endpoints")

    # ======================
    # BitGo (custodial wallets)
    # ======================
    bitgo_webhook_secret: Optional[str] = Field(
        default=None, description="Shared secret BitGo sends with webhook deliveries"
    )
    bitgo_coin_base_url: Optional[str] = Field(default=None, description="BitGo API base URL")
    bitgo_secret_key: Optional[str] = Field(default=None, description="BitGo access token")

    bitgo_coin_btc: Optional[str] = Field(default=None, description="BitGo coin code for BTC")
    bitgo_coin_eth: Optional[str] = Field(default=None, description="BitGo coin code for ETH")
    bitgo_coin_usdt: Optional[str] = Field(default=None, description="BitGo coin code for USDT")
    bitgo_coin_bnb: Optional[str] = Field(default=None, description="BitGo coin code for BNB")

    bitgo_wallet_id_btc: Optional[str] = Field(default=None, description="BitGo wallet id for BTC")
    bitgo_wallet_id_eth: Optional[str] = Field(default=None, description="BitGo wallet id for ETH")
    bitgo_wallet_id_usdt: Optional[str] = Field(default=None, description="BitGo wallet id for USDT")
    bitgo_wallet_id_bnb: Optional[str] = Field(default=None, description="BitGo wallet id for BNB")

    bitgo_transfer_timeout: float = Field(
        default=15.0, description="Timeout (seconds) for transfer detail lookups"
    )

    # ======================
    # Pricing
    # ======================
    coingecko_api_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API URL"
    )
    coingecko_api_key: str = Field(default="", description="CoinGecko demo API key")
    price_fetch_timeout: float = Field(
        default=10.0, description="Timeout (seconds) for spot price lookups"
    )
    price_cache_ttl_seconds: float = Field(
        default=300.0, description="Freshness window for cached spot prices"
    )
    deposit_fee_rate: Decimal = Field(
        default=Decimal("0.01"), description="Fee taken from gross fiat value (0.01 = 1%)"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_bitgo(self) -> bool:
        """Check if the BitGo API credentials are configured."""
        return bool(self.bitgo_coin_base_url and self.bitgo_secret_key)

    def coin_overrides(self) -> dict[str, Optional[str]]:
        """Configured BitGo coin code per asset."""
        return {
            "BTC": self.bitgo_coin_btc,
            "ETH": self.bitgo_coin_eth,
            "USDT": self.bitgo_coin_usdt,
            "BNB": self.bitgo_coin_bnb,
        }

    def wallet_ids(self) -> dict[str, Optional[str]]:
        """Configured BitGo wallet id per asset."""
        return {
            "BTC": self.bitgo_wallet_id_btc,
            "ETH": self.bitgo_wallet_id_eth,
            "USDT": self.bitgo_wallet_id_usdt,
            "BNB": self.bitgo_wallet_id_bnb,
        }

    def get_bitgo_config(self, asset: str) -> BitGoConfig:
        """Resolve BitGo API settings for an asset.

        Raises:
            ProviderConfigError: if credentials or the wallet id are missing
        """
        if not self.bitgo_coin_base_url or not self.bitgo_secret_key:
            raise ProviderConfigError("BitGo env vars missing")

        asset = asset.upper()
        wallet_id = self.wallet_ids().get(asset)
        if not wallet_id:
            raise ProviderConfigError(f"Missing BITGO_WALLET_ID for {asset}")

        return BitGoConfig(
            base_url=self.bitgo_coin_base_url.rstrip("/"),
            secret_key=self.bitgo_secret_key,
            wallet_id=wallet_id,
            coin=self.coin_overrides().get(asset),
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "webhook_secret": "***" if self.bitgo_webhook_secret else "(not set)",
            "bitgo": {
                "base_url": self.bitgo_coin_base_url or "(not set)",
                "secret_key": "***" if self.bitgo_secret_key else "(not set)",
                "coins": {k: v or "(not set)" for k, v in self.coin_overrides().items()},
                "wallets": {k: "***" if v else "(not set)" for k, v in self.wallet_ids().items()},
            },
            "pricing": {
                "coingecko": self.coingecko_api_url,
                "cache_ttl_seconds": self.price_cache_ttl_seconds,
                "fee_rate": str(self.deposit_fee_rate),
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
