"""BitGo webhook normalization and deposit reconciliation."""

from paydail.webhook.assets import normalize_amount, resolve_asset
from paydail.webhook.events import TransferEntry, TransferEvent, parse_transfer_event
from paydail.webhook.status import normalize_status

__all__ = [
    "TransferEntry",
    "TransferEvent",
    "normalize_amount",
    "normalize_status",
    "parse_transfer_event",
    "resolve_asset",
]
