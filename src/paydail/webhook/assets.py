"""Asset resolution and base-unit conversion for BitGo coin codes."""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetRule:
    """Maps a lowercased coin code to an asset when ``matches`` holds."""

    name: str
    matches: Callable[[str], bool]
    asset: str


# Evaluated top to bottom; first match wins.
ASSET_RULES: tuple[AssetRule, ...] = (
    AssetRule("contains btc", lambda c: "btc" in c, "BTC"),
    # Also catches "tether"; configure BITGO_COIN_USDT for tether codes
    AssetRule("contains eth", lambda c: "eth" in c, "ETH"),
    AssetRule("contains usdt or tether", lambda c: "usdt" in c or "tether" in c, "USDT"),
    # BitGo uses bsc/tbsc for Binance Smart Chain coins
    AssetRule("contains bsc", lambda c: "bsc" in c, "BNB"),
    AssetRule("contains bnb", lambda c: "bnb" in c, "BNB"),
)

# Divisor from provider base units to display units
BASE_UNIT_DIVISORS: dict[str, Decimal] = {
    "BTC": Decimal(10) ** 8,  # satoshi
    "ETH": Decimal(10) ** 18,  # wei
    "BNB": Decimal(10) ** 18,
    "USDT": Decimal(1),
}


def guess_asset_from_coin(coin: Optional[str]) -> Optional[str]:
    """Classify a coin code by substring rules alone."""
    code = (coin or "").lower()
    for rule in ASSET_RULES:
        if rule.matches(code):
            return rule.asset
    return None


def resolve_asset(
    coin: Optional[str],
    overrides: Optional[Mapping[str, Optional[str]]] = None,
) -> Optional[str]:
    """Map a BitGo coin code to BTC, ETH, USDT or BNB.

    Configured coin codes (``overrides``, asset -> code) are matched
    exactly and case-insensitively before the substring rules apply.
    Returns None for unsupported coins.
    """
    code = (coin or "").lower()
    for asset, override in (overrides or {}).items():
        if isinstance(override, str) and override and override.lower() == code:
            return asset.upper()
    return guess_asset_from_coin(code)


def to_decimal(value: Union[int, float, str, Decimal, None]) -> Decimal:
    """Coerce a raw entry value to a finite Decimal, 0 when unusable."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        # str() keeps floats at their shortest repr instead of binary expansion
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not number.is_finite():
        return Decimal("0")
    return number


def normalize_amount(asset: Optional[str], value: Union[int, float, str, Decimal, None]) -> Decimal:
    """Convert a raw entry value from base units to display units.

    BTC values arrive in satoshis and ETH/BNB in wei; USDT (and any
    unknown asset) is already in display units.
    """
    number = to_decimal(value)
    divisor = BASE_UNIT_DIVISORS.get((asset or "").upper(), Decimal(1))
    return number / divisor
