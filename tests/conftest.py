"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["BITGO_WEBHOOK_SECRET"] = "test-secret"
os.environ["ADMIN_TOKEN"] = "admin-token"
for _var in ("BITGO_COIN_BASE_URL", "BITGO_SECRET_KEY"):
    os.environ.pop(_var, None)

from paydail.ledger.database import make_session_factory
from paydail.ledger.models import Base
from paydail.ledger.repository import LedgerRepository
from paydail.pricing.cache import PriceCache
from paydail.pricing.converter import AdminRateSource, RateConverter
from paydail.utils.locks import clear_user_locks
from paydail.webhook.reconciler import DepositReconciler

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

BTC_ADDRESS = "1A2bExampleBtcAddress"
ETH_ADDRESS = "0xEthExampleAddress"
USDT_ADDRESS = "TUsdtExampleAddress"
BNB_ADDRESS = "0xBnbExampleAddress"


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePriceFeed:
    """Async USD price source with a failure switch."""

    def __init__(self, prices: dict[str, Decimal]):
        self.prices = dict(prices)
        self.calls: list[str] = []
        self.fail = False

    async def __call__(self, asset: str) -> Decimal:
        self.calls.append(asset)
        if self.fail:
            raise httpx.ConnectError("price source down")
        return self.prices[asset]


@pytest.fixture(autouse=True)
def reset_locks():
    """Locks are bound to an event loop; start every test with none."""
    clear_user_locks()
    yield
    clear_user_locks()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a file-backed SQLite engine so separate sessions share data."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'paydail-test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def ledger_repo(db_session: AsyncSession) -> LedgerRepository:
    """Create ledger repository for testing."""
    return LedgerRepository(db_session)


@pytest_asyncio.fixture
async def user(session_factory):
    """User with one deposit address per network."""
    async with session_factory() as session:
        created = await LedgerRepository(session).create_user(
            email="ada@example.com",
            btc_deposit_address=BTC_ADDRESS,
            eth_deposit_address=ETH_ADDRESS,
            usdt_deposit_address_trc20=USDT_ADDRESS,
            bnb_deposit_address_bep20=BNB_ADDRESS,
        )
        await session.commit()
        return created


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def price_feed() -> FakePriceFeed:
    return FakePriceFeed(
        {
            "BTC": Decimal("60000"),
            "ETH": Decimal("3000"),
            "BNB": Decimal("600"),
        }
    )


@pytest.fixture
def price_cache(price_feed, clock) -> PriceCache:
    return PriceCache(price_feed, ttl_seconds=300, clock=clock)


@pytest.fixture
def converter(price_cache, session_factory) -> RateConverter:
    return RateConverter(
        price_cache=price_cache,
        rate_source=AdminRateSource(session_factory),
        fee_rate=Decimal("0.01"),
    )


@pytest.fixture
def reconciler(converter, session_factory) -> DepositReconciler:
    return DepositReconciler(
        converter=converter,
        provider=None,
        session_factory=session_factory,
        clock=lambda: FIXED_NOW,
    )
