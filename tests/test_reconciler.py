"""Tests for deposit webhook reconciliation."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from paydail.ledger.models import Deposit, Notification
from paydail.ledger.repository import LedgerRepository
from paydail.providers.base import ProviderAdapter, ProviderError
from paydail.webhook.events import TransferEvent
from paydail.webhook.reconciler import (
    DepositReconciler,
    build_reference,
    compute_balance_delta,
    resolve_created_at,
)

from conftest import BNB_ADDRESS, BTC_ADDRESS, ETH_ADDRESS, FIXED_NOW, USDT_ADDRESS

# 1 BTC at $60,000 and ₦1,640/$ less 1%
ONE_BTC_NET = Decimal("97416000")


def btc_payload(state="confirmed", txid="abc123", value=100_000_000, address=BTC_ADDRESS, **extra):
    transfer = {"txid": txid, "state": state, "entries": [{"address": address, "value": value}]}
    transfer.update(extra)
    return {"coin": "tbtc", "transfer": transfer}


async def _balance(session_factory, user_id) -> Decimal:
    async with session_factory() as session:
        return await LedgerRepository(session).get_naira_balance(user_id)


async def _deposits(session_factory) -> list[Deposit]:
    async with session_factory() as session:
        result = await session.execute(select(Deposit).order_by(Deposit.id))
        return list(result.scalars().all())


async def _notifications(session_factory, user_id) -> list[Notification]:
    async with session_factory() as session:
        return await LedgerRepository(session).list_notifications(user_id)


class StubProvider(ProviderAdapter):
    """Provider returning a canned transfer or raising."""

    def __init__(self, transfer=None, error=None):
        self.transfer = transfer
        self.error = error
        self.calls = []

    @property
    def name(self) -> str:
        return "stub"

    async def create_deposit_address(self, user_id, asset):
        raise NotImplementedError()

    async def fetch_transfer(self, coin, transfer_id):
        self.calls.append((coin, transfer_id))
        if self.error:
            raise self.error
        return self.transfer

    async def validate_config(self) -> bool:
        return True


class TestBalanceDelta:
    """Tests for compute_balance_delta."""

    def test_non_creditable_status_never_credits(self):
        assert compute_balance_delta("pending", Decimal("100")) == 0
        assert compute_balance_delta("failed", Decimal("100"), "confirmed", Decimal("50"), True) == 0

    def test_first_sighting_credits_full_amount(self):
        assert compute_balance_delta("confirmed", Decimal("100")) == Decimal("100")

    def test_transition_from_pending_credits_full_amount(self):
        assert compute_balance_delta("completed", Decimal("100"), "pending", Decimal("90"), True) == Decimal("100")

    def test_already_credited_applies_difference(self):
        assert compute_balance_delta("confirmed", Decimal("120"), "confirmed", Decimal("100"), True) == Decimal("20")
        assert compute_balance_delta("completed", Decimal("80"), "success", Decimal("100"), True) == Decimal("-20")


class TestReferenceAndDate:
    """Tests for reference and created_at derivation."""

    def test_reference_prefers_transfer_id(self):
        assert build_reference(TransferEvent(transfer_id="tr-1", txid="abcdef0123456789"), FIXED_NOW) == "tr-1"

    def test_reference_from_txid_prefix(self):
        assert build_reference(TransferEvent(txid="abcdef0123456789"), FIXED_NOW) == "TX_abcdef0123"

    def test_reference_from_timestamp(self):
        assert build_reference(TransferEvent(), FIXED_NOW) == f"TX_{int(FIXED_NOW.timestamp() * 1000)}"

    def test_created_at_uses_valid_iso_date(self):
        created = resolve_created_at("2026-01-02T03:04:05.000Z", FIXED_NOW)
        assert created == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "date,expected",
        [
            ("2026-01-02T03:04:05.12Z", datetime(2026, 1, 2, 3, 4, 5, 120000, tzinfo=timezone.utc)),
            ("2026-01-02T03:04:05Z", datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
            ("2026-01-02T04:04:05+01:00", datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
            ("2026-01-02", datetime(2026, 1, 2, tzinfo=timezone.utc)),
        ],
    )
    def test_created_at_accepts_common_iso_forms(self, date, expected):
        assert resolve_created_at(date, FIXED_NOW) == expected

    @pytest.mark.parametrize("date", [None, "", "yesterday", "2026-13-40"])
    def test_created_at_falls_back_to_now(self, date):
        assert resolve_created_at(date, FIXED_NOW) == FIXED_NOW


class TestReconciliation:
    """End-to-end reconciliation against a real database."""

    @pytest.mark.asyncio
    async def test_confirmed_btc_deposit_end_to_end(self, reconciler, session_factory, user):
        result = await reconciler.handle_payload(btc_payload())

        assert result.ignored is False
        assert result.processed == 1
        outcome = result.outcomes[0]
        assert outcome.action == "created"
        assert outcome.credited == ONE_BTC_NET

        deposits = await _deposits(session_factory)
        assert len(deposits) == 1
        deposit = deposits[0]
        assert deposit.user_id == user.id
        assert deposit.status == "confirmed"
        assert deposit.amount == Decimal("1")
        assert deposit.naira_amount == ONE_BTC_NET
        assert deposit.coin == "TBTC"
        assert deposit.network == "BTC"
        assert deposit.type == "Deposit"
        assert deposit.reference == "TX_abc123"
        assert deposit.transaction_hash == "abc123"

        assert await _balance(session_factory, user.id) == ONE_BTC_NET

        notifications = await _notifications(session_factory, user.id)
        assert len(notifications) == 1
        assert notifications[0].title == "Deposit Confirmed"
        assert notifications[0].notification_type == "deposit_confirmed"
        assert notifications[0].read is False
        assert "₦97,416,000" in notifications[0].message

    @pytest.mark.asyncio
    async def test_identical_redelivery_is_idempotent(self, reconciler, session_factory, user):
        await reconciler.handle_payload(btc_payload())
        result = await reconciler.handle_payload(btc_payload())

        assert result.outcomes[0].action == "updated"
        assert result.outcomes[0].balance_delta == 0
        assert len(await _deposits(session_factory)) == 1
        assert await _balance(session_factory, user.id) == ONE_BTC_NET
        assert len(await _notifications(session_factory, user.id)) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "coin,address,asset,usd_price,value",
        [
            ("tbtc", BTC_ADDRESS, "BTC", "60123.457", 123457),
            ("hteth", ETH_ADDRESS, "ETH", "3141.5926", "123456789012345678"),
            ("tbsc", BNB_ADDRESS, "BNB", "612.3456789", "987654321098765432"),
        ],
    )
    async def test_redelivery_with_fractional_valuation_is_idempotent(
        self, reconciler, session_factory, user, price_feed, coin, address, asset, usd_price, value
    ):
        price_feed.prices[asset] = Decimal(usd_price)
        async with session_factory() as session:
            await LedgerRepository(session).add_admin_rates(
                btc_rate=Decimal("1641.2345"),
                eth_rate=Decimal("1639.8765"),
                bnb_rate=Decimal("1610.0101"),
            )
            await session.commit()
        payload = {
            "coin": coin,
            "transfer": {
                "txid": f"fractional-{asset}",
                "state": "confirmed",
                "entries": [{"address": address, "value": value}],
            },
        }

        first = await reconciler.handle_payload(payload)
        balance_after_first = await _balance(session_factory, user.id)
        second = await reconciler.handle_payload(payload)

        assert first.outcomes[0].credited > 0
        assert first.outcomes[0].credited == first.outcomes[0].credited.quantize(Decimal("0.01"))
        assert second.outcomes[0].action == "updated"
        assert second.outcomes[0].balance_delta == 0
        assert second.outcomes[0].credited == 0
        assert await _balance(session_factory, user.id) == balance_after_first
        assert balance_after_first == first.outcomes[0].credited
        deposit = (await _deposits(session_factory))[0]
        assert deposit.naira_amount == balance_after_first

    @pytest.mark.asyncio
    async def test_pending_then_confirmed_credits_once(self, reconciler, session_factory, user):
        pending = await reconciler.handle_payload(btc_payload(state="unconfirmed"))
        assert pending.outcomes[0].status == "pending"
        assert await _balance(session_factory, user.id) == 0

        confirmed = await reconciler.handle_payload(btc_payload(state="confirmed"))
        assert confirmed.outcomes[0].credited == ONE_BTC_NET
        assert await _balance(session_factory, user.id) == ONE_BTC_NET

        again = await reconciler.handle_payload(btc_payload(state="confirmed"))
        assert again.outcomes[0].credited == 0
        assert await _balance(session_factory, user.id) == ONE_BTC_NET

        titles = [n.title for n in await _notifications(session_factory, user.id)]
        assert titles == ["Deposit Pending", "Deposit Confirmed"]

    @pytest.mark.asyncio
    async def test_price_correction_credits_difference(
        self, reconciler, session_factory, user, price_feed, clock
    ):
        await reconciler.handle_payload(btc_payload())

        clock.advance(301)
        price_feed.prices["BTC"] = Decimal("61000")
        result = await reconciler.handle_payload(btc_payload())

        corrected = Decimal("99039600")
        assert result.outcomes[0].balance_delta == corrected - ONE_BTC_NET
        assert await _balance(session_factory, user.id) == corrected

        deposit = (await _deposits(session_factory))[0]
        assert deposit.naira_amount == corrected

    @pytest.mark.asyncio
    async def test_downward_correction_is_not_debited(
        self, reconciler, session_factory, user, price_feed, clock
    ):
        await reconciler.handle_payload(btc_payload())

        clock.advance(301)
        price_feed.prices["BTC"] = Decimal("59000")
        result = await reconciler.handle_payload(btc_payload())

        lowered = Decimal("95792400")
        assert result.outcomes[0].balance_delta == lowered - ONE_BTC_NET
        assert result.outcomes[0].credited == 0
        assert await _balance(session_factory, user.id) == ONE_BTC_NET
        assert (await _deposits(session_factory))[0].naira_amount == lowered

    @pytest.mark.asyncio
    async def test_failed_deposit_is_recorded_without_credit(self, reconciler, session_factory, user):
        await reconciler.handle_payload(btc_payload(state="pending"))
        await reconciler.handle_payload(btc_payload(state="failed"))

        assert (await _deposits(session_factory))[0].status == "failed"
        assert await _balance(session_factory, user.id) == 0
        titles = [n.title for n in await _notifications(session_factory, user.id)]
        assert titles == ["Deposit Pending", "Deposit Failed"]

    @pytest.mark.asyncio
    async def test_unknown_address_is_skipped_and_siblings_processed(
        self, reconciler, session_factory, user
    ):
        payload = {
            "coin": "tbtc",
            "transfer": {
                "txid": "multi-1",
                "state": "confirmed",
                "entries": [
                    {"address": "nobody-owns-this", "value": 500_000_000},
                    {"address": BTC_ADDRESS, "value": 100_000_000},
                ],
            },
        }

        result = await reconciler.handle_payload(payload)

        assert [o.action for o in result.outcomes] == ["skipped", "created"]
        assert result.outcomes[0].reason == "no_owner"
        deposits = await _deposits(session_factory)
        assert [d.address for d in deposits] == [BTC_ADDRESS]
        assert await _balance(session_factory, user.id) == ONE_BTC_NET

    @pytest.mark.asyncio
    async def test_network_follows_matched_column(self, reconciler, session_factory, user):
        payload = {
            "coin": "ttrx:usdt",
            "transfer": {"txid": "usdt-1", "state": "completed", "entries": [{"address": USDT_ADDRESS, "value": "42"}]},
        }

        result = await reconciler.handle_payload(payload)

        deposit = (await _deposits(session_factory))[0]
        assert deposit.network == "TRC20"
        assert deposit.amount == Decimal("42")
        assert deposit.status == "completed"
        # 42 USDT x ₦1,650 less 1%
        assert result.outcomes[0].credited == Decimal("68607")

    @pytest.mark.asyncio
    async def test_eth_amount_in_wei(self, reconciler, session_factory, user):
        payload = {
            "coin": "hteth",
            "transfer": {
                "txid": "eth-1",
                "state": "confirmed",
                "entries": [{"address": ETH_ADDRESS, "value": "2500000000000000000"}],
            },
        }

        await reconciler.handle_payload(payload)

        deposit = (await _deposits(session_factory))[0]
        assert deposit.amount == Decimal("2.5")
        assert deposit.network == "ETH"

    @pytest.mark.asyncio
    async def test_pricing_failure_still_records_deposit(
        self, reconciler, session_factory, user, price_feed
    ):
        price_feed.fail = True

        result = await reconciler.handle_payload(btc_payload())

        assert result.outcomes[0].action == "created"
        deposit = (await _deposits(session_factory))[0]
        assert deposit.naira_amount == 0
        assert await _balance(session_factory, user.id) == 0

    @pytest.mark.asyncio
    async def test_notifications_disabled(self, reconciler, session_factory, user):
        async with session_factory() as session:
            stored = await LedgerRepository(session).get_user(user.id)
            stored.notify_transactions = False
            await session.commit()

        await reconciler.handle_payload(btc_payload(state="pending"))
        await reconciler.handle_payload(btc_payload(state="confirmed"))

        assert await _notifications(session_factory, user.id) == []
        assert await _balance(session_factory, user.id) == ONE_BTC_NET

    @pytest.mark.asyncio
    async def test_unsupported_coin_is_ignored(self, reconciler, session_factory, user):
        payload = btc_payload()
        payload["coin"] = "sol"

        result = await reconciler.handle_payload(payload)

        assert result.ignored is True
        assert result.outcomes[0].reason == "unsupported_coin"
        assert await _deposits(session_factory) == []

    @pytest.mark.asyncio
    async def test_no_entries_is_ignored(self, reconciler, session_factory):
        result = await reconciler.handle_payload({"coin": "tbtc", "transfer": {"txid": "x"}})

        assert result.ignored is True
        assert result.outcomes == []

    @pytest.mark.asyncio
    async def test_concurrent_deliveries_for_same_user_do_not_lose_credits(
        self, reconciler, session_factory, user
    ):
        await asyncio.gather(
            reconciler.handle_payload(btc_payload(txid="concurrent-a")),
            reconciler.handle_payload(btc_payload(txid="concurrent-b", value=200_000_000)),
        )

        assert await _balance(session_factory, user.id) == ONE_BTC_NET * 3
        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(Deposit))
        assert count == 2


class TestTransferDetailFetch:
    """Tests for fetching entries when the webhook carries only a transfer id."""

    @pytest.mark.asyncio
    async def test_entries_fetched_by_transfer_id(self, converter, session_factory, user):
        provider = StubProvider(
            transfer={
                "id": "tr-42",
                "txid": "fetched-tx",
                "state": "confirmed",
                "entries": [{"address": BTC_ADDRESS, "value": 100_000_000}],
            }
        )
        reconciler = DepositReconciler(
            converter, provider=provider, session_factory=session_factory, clock=lambda: FIXED_NOW
        )

        result = await reconciler.handle_payload({"coin": "tbtc", "transfer": "tr-42"})

        assert provider.calls == [("tbtc", "tr-42")]
        assert result.processed == 1
        deposit = (await _deposits(session_factory))[0]
        assert deposit.reference == "tr-42"
        assert deposit.transaction_hash == "fetched-tx"
        assert deposit.status == "confirmed"

    @pytest.mark.asyncio
    async def test_fetch_failure_marks_event_ignored(self, converter, session_factory, user):
        provider = StubProvider(error=ProviderError("BitGo GET failed: 503", status_code=503))
        reconciler = DepositReconciler(converter, provider=provider, session_factory=session_factory)

        result = await reconciler.handle_payload({"coin": "tbtc", "transferId": "tr-43"})

        assert result.ignored is True
        assert await _deposits(session_factory) == []

    @pytest.mark.asyncio
    async def test_fetch_skipped_when_entries_present(self, converter, session_factory, user):
        provider = StubProvider(error=AssertionError("should not be called"))
        reconciler = DepositReconciler(converter, provider=provider, session_factory=session_factory)

        await reconciler.handle_payload(btc_payload(id="tr-44"))

        assert provider.calls == []
