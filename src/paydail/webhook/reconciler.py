"""Deposit reconciliation for BitGo transfer webhooks.

Each delivery is resolved entry by entry: owner lookup by deposit
address, valuation in naira, then one unit of work that reads any prior
deposit for the transaction hash, credits the balance delta and upserts
the deposit. Redelivery of the same event is safe; the handler never
retries anything itself.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paydail.config import ProviderConfigError
from paydail.ledger.database import get_session_factory, unit_of_work
from paydail.ledger.models import User, is_creditable
from paydail.ledger.repository import LedgerRepository
from paydail.notifications.deposits import build_deposit_notice
from paydail.pricing.converter import RateConverter, to_kobo
from paydail.providers.base import ProviderAdapter, ProviderError
from paydail.utils.locks import user_balance_lock
from paydail.webhook.assets import normalize_amount, resolve_asset
from paydail.webhook.events import (
    TransferEntry,
    TransferEvent,
    describe_payload,
    extract_entries,
    parse_transfer_event,
)
from paydail.webhook.status import normalize_status

logger = logging.getLogger(__name__)


@dataclass
class EntryOutcome:
    """What happened to one entry of a delivery."""

    address: str
    action: str  # created, updated, skipped
    reason: Optional[str] = None
    user_id: Optional[int] = None
    deposit_id: Optional[int] = None
    status: Optional[str] = None
    balance_delta: Decimal = Decimal("0")
    credited: Decimal = Decimal("0")
    notified: bool = False

    @classmethod
    def skipped(cls, address: str, reason: str, user_id: Optional[int] = None) -> "EntryOutcome":
        return cls(address=address, action="skipped", reason=reason, user_id=user_id)


@dataclass
class ReconcileResult:
    """Outcome of one webhook delivery."""

    event: TransferEvent
    ignored: bool = False
    outcomes: list[EntryOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for o in self.outcomes if o.action != "skipped")


def compute_balance_delta(
    new_status: str,
    new_naira: Decimal,
    prior_status: Optional[str] = None,
    prior_naira: Optional[Decimal] = None,
    has_prior: bool = False,
) -> Decimal:
    """Naira to add to the balance for this delivery.

    Nothing unless the new status is creditable. The full value on the
    first creditable sighting; afterwards only the change in value, which
    may be negative.
    """
    if not is_creditable(new_status):
        return Decimal("0")
    if not has_prior or not is_creditable(prior_status):
        return new_naira
    return new_naira - (prior_naira or Decimal("0"))


def build_reference(event: TransferEvent, now: datetime) -> str:
    """Display reference: transfer id, else a txid prefix, else a timestamp.

    The timestamp form can collide for concurrent hashless deposits.
    """
    if event.transfer_id:
        return event.transfer_id
    if event.txid:
        return f"TX_{event.txid[:10]}"
    return f"TX_{int(now.timestamp() * 1000)}"


def resolve_created_at(date: Optional[str], now: datetime) -> datetime:
    """Event date if it parses as ISO-8601, otherwise ``now``."""
    if not date:
        return now
    try:
        parsed = datetime.fromisoformat(date.strip())
    except ValueError:
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DepositReconciler:
    """Applies BitGo transfer events to deposits, balances and notifications."""

    def __init__(
        self,
        converter: RateConverter,
        provider: Optional[ProviderAdapter] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        coin_overrides: Optional[Mapping[str, Optional[str]]] = None,
        clock: Callable[[], datetime] = _utcnow,
        lock_timeout: Optional[float] = 30.0,
    ):
        """Initialize the reconciler.

        Args:
            converter: Values asset amounts in naira
            provider: Custodial provider used to fetch missing transfer details
            session_factory: Session factory (defaults to the global engine)
            coin_overrides: Configured BitGo coin code per asset
            clock: Current time, used for references and created_at fallback
            lock_timeout: Seconds to wait for a user's balance lock
        """
        self.converter = converter
        self.provider = provider
        self._session_factory = session_factory
        self.coin_overrides = dict(coin_overrides or {})
        self._clock = clock
        self.lock_timeout = lock_timeout

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    async def handle_payload(self, body: dict) -> ReconcileResult:
        """Normalize a raw webhook body and reconcile it."""
        event = parse_transfer_event(body)

        if not event.entries and event.transfer_id:
            event = await self.fetch_missing_entries(event)

        if not event.entries:
            logger.error(
                f"Webhook has no entries: coin={event.coin} transfer_id={event.transfer_id} "
                f"txid={event.txid} {describe_payload(body)}"
            )
            return ReconcileResult(event=event, ignored=True)

        return await self.reconcile_event(event)

    async def fetch_missing_entries(self, event: TransferEvent) -> TransferEvent:
        """Fill entries (and absent txid/state/date) from the provider's transfer record.

        Failures are logged and the event is returned unchanged.
        """
        if self.provider is None:
            return event

        try:
            transfer = await self.provider.fetch_transfer(event.coin, event.transfer_id)
        except (ProviderError, ProviderConfigError) as e:
            logger.error(
                f"Failed to fetch transfer details: coin={event.coin} "
                f"transfer_id={event.transfer_id} error={e} "
                f"status={getattr(e, 'status_code', None)} data={getattr(e, 'data', None)}"
            )
            return event

        entries = extract_entries(transfer)
        if not entries:
            return event

        fetched = parse_transfer_event({"transfer": transfer})
        return dataclasses.replace(
            event,
            entries=entries,
            txid=event.txid or fetched.txid,
            state=event.state or fetched.state,
            date=event.date or fetched.date,
        )

    async def reconcile_event(self, event: TransferEvent) -> ReconcileResult:
        """Reconcile every entry of a normalized event, in order."""
        result = ReconcileResult(event=event)

        asset = resolve_asset(event.coin, self.coin_overrides)
        if asset is None:
            logger.warning(f"Unsupported coin {event.coin!r} for txid={event.txid}, skipping")
            result.ignored = True
            result.outcomes = [
                EntryOutcome.skipped(entry.address, "unsupported_coin") for entry in event.entries
            ]
            return result

        for entry in event.entries:
            outcome = await self.reconcile_entry(event, entry, asset)
            result.outcomes.append(outcome)

        logger.info(
            f"Webhook reconciled: txid={event.txid} entries={len(event.entries)} "
            f"processed={result.processed}"
        )
        return result

    async def _find_owner(self, address: str) -> Optional[User]:
        async with self.session_factory() as session:
            return await LedgerRepository(session).find_user_by_address(address)

    async def reconcile_entry(
        self,
        event: TransferEvent,
        entry: TransferEntry,
        asset: str,
    ) -> EntryOutcome:
        """Reconcile one (address, value) entry. Never raises."""
        address = entry.address

        try:
            user = await self._find_owner(address)
        except Exception as e:
            logger.error(f"Owner lookup failed for address {address}: {e}")
            return EntryOutcome.skipped(address, "lookup_error")

        if user is None:
            return EntryOutcome.skipped(address, "no_owner")

        network = user.matched_network(address)
        if network is None:
            return EntryOutcome.skipped(address, "no_matching_column", user.id)

        now = self._clock()
        status = normalize_status(event.state).value
        amount = normalize_amount(asset, entry.value)
        naira_amount = to_kobo(await self.converter.net_naira(asset, amount))
        coin = (event.coin or "").upper()

        fields = dict(
            user_id=user.id,
            reference=build_reference(event, now),
            type="Deposit",
            amount=amount,
            naira_amount=naira_amount,
            status=status,
            created_at=resolve_created_at(event.date, now),
            address=address,
            coin=coin,
            network=network.value,
            transaction_hash=event.txid,
        )

        try:
            async with user_balance_lock(
                user.id, timeout=self.lock_timeout, operation=f"deposit {event.txid}"
            ):
                async with unit_of_work(self.session_factory) as session:
                    repo = LedgerRepository(session)
                    existing = await repo.get_deposit_by_tx_hash(event.txid)
                    prior_status = (existing.status or "").lower() if existing else ""

                    delta = compute_balance_delta(
                        status,
                        naira_amount,
                        prior_status=prior_status,
                        prior_naira=to_kobo(existing.naira_amount) if existing else None,
                        has_prior=existing is not None,
                    )
                    credited = delta if delta > 0 else Decimal("0")
                    if credited:
                        balance = await repo.credit_naira_balance(user.id, credited)
                        logger.info(
                            f"Credited ₦{credited} to user {user.id} for txid={event.txid} "
                            f"(balance ₦{balance})"
                        )

                    if existing is not None:
                        deposit = await repo.update_deposit(existing, **fields)
                    else:
                        deposit = await repo.create_deposit(**fields)
                    deposit_id = deposit.id
        except Exception as e:
            logger.error(
                f"Deposit upsert failed for address {address} txid={event.txid}: {e}"
            )
            return EntryOutcome.skipped(address, "persist_error", user.id)

        outcome = EntryOutcome(
            address=address,
            action="updated" if existing is not None else "created",
            user_id=user.id,
            deposit_id=deposit_id,
            status=status,
            balance_delta=delta,
            credited=credited,
        )

        # First sighting always notifies; updates only on a real status change.
        status_changed = existing is None or (bool(prior_status) and prior_status != status)
        notify_enabled = user.notify_transactions is not False
        if notify_enabled and status_changed:
            outcome.notified = await self._notify(user.id, status, amount, coin, naira_amount, event)

        return outcome

    async def _notify(
        self,
        user_id: int,
        status: str,
        amount: Decimal,
        coin: str,
        naira_amount: Decimal,
        event: TransferEvent,
    ) -> bool:
        notice = build_deposit_notice(status, amount, coin, naira_amount)
        try:
            async with unit_of_work(self.session_factory) as session:
                await LedgerRepository(session).create_notification(
                    user_id=user_id,
                    title=notice.title,
                    message=notice.message,
                    notification_type=notice.notification_type,
                    status=notice.status,
                )
        except Exception as e:
            logger.error(
                f"Notification insert failed for user {user_id} txid={event.txid}: {e}"
            )
            return False
        return True


__all__ = [
    "DepositReconciler",
    "EntryOutcome",
    "ReconcileResult",
    "build_reference",
    "compute_balance_delta",
    "resolve_created_at",
]
