"""BitGo webhook payload normalization.

BitGo delivers transfer notifications in several shapes: a full
transfer object with ``entries``, older ``outputs``/``recipients``
arrays, a bare transfer id, or flat top-level fields. Everything is
reduced here to a single ``TransferEvent``; nothing downstream looks at
the raw body.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

EntryValue = Union[int, float, str, None]


@dataclass(frozen=True)
class TransferEntry:
    """One credited destination within a transfer."""

    address: str
    value: EntryValue = None


@dataclass
class TransferEvent:
    """Canonical form of one webhook delivery."""

    coin: str = ""
    txid: Optional[str] = None
    transfer_id: Optional[str] = None
    state: Optional[str] = None
    date: Optional[str] = None
    entries: list[TransferEntry] = field(default_factory=list)


def _as_mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _first_str(*candidates: Any) -> Optional[str]:
    """First candidate that is a non-empty string."""
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def _first_present(*candidates: Any) -> Any:
    """First candidate that is not None (empty strings and zero count)."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def as_entry(address: Any, value: Any) -> Optional[TransferEntry]:
    """Build an entry if ``address`` is a non-empty string.

    Values other than numbers and strings are dropped to None.
    """
    if not isinstance(address, str) or not address:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        value = None
    return TransferEntry(address=address, value=value)


def _entries_from(items: Any, *value_keys: str) -> list[TransferEntry]:
    if not isinstance(items, list):
        return []

    entries = []
    for item in items:
        item = _as_mapping(item)
        value = _first_present(*(item.get(key) for key in value_keys))
        entry = as_entry(item.get("address"), value)
        if entry:
            entries.append(entry)
    return entries


def _single_entry(addresses: Iterable[Any], values: Iterable[Any]) -> list[TransferEntry]:
    entry = as_entry(_first_present(*addresses), _first_present(*values))
    return [entry] if entry else []


def extract_entries(transfer: Any, body: Optional[dict] = None) -> list[TransferEntry]:
    """Extract (address, value) entries from a transfer object.

    Shapes are tried in priority order and the first non-empty one wins:
    ``entries``, ``outputs``, ``recipients``, then a single destination
    built from ``toAddress``/``address`` and ``value``/``amount`` (looked
    up on the transfer first, then on ``body`` when given).
    """
    transfer = _as_mapping(transfer)
    body = _as_mapping(body)

    return (
        _entries_from(transfer.get("entries"), "value")
        or _entries_from(transfer.get("outputs"), "value", "amount")
        or _entries_from(transfer.get("recipients"), "value", "amount")
        or _single_entry(
            (
                transfer.get("toAddress"),
                transfer.get("address"),
                body.get("address"),
                body.get("toAddress"),
            ),
            (
                transfer.get("value"),
                transfer.get("amount"),
                body.get("value"),
                body.get("amount"),
            ),
        )
    )


def parse_transfer_event(body: Any) -> TransferEvent:
    """Normalize a raw webhook body. Never raises."""
    body = _as_mapping(body)
    raw_transfer = body.get("transfer")
    transfer = _as_mapping(raw_transfer)

    coin = _first_str(body.get("coin"), transfer.get("coin")) or ""

    txid = _first_str(
        transfer.get("txid"),
        transfer.get("transactionHash"),
        body.get("txid"),
        body.get("hash"),
    )

    transfer_id = _first_str(
        raw_transfer if isinstance(raw_transfer, str) else None,
        transfer.get("id"),
        body.get("transferId"),
    )

    state = _first_str(transfer.get("state"), body.get("state"))
    date = _first_str(transfer.get("date"), body.get("date"))

    return TransferEvent(
        coin=coin,
        txid=txid,
        transfer_id=transfer_id,
        state=state,
        date=date,
        entries=extract_entries(transfer, body),
    )


def describe_payload(body: Any) -> dict:
    """Diagnostic summary of a body that yielded no entries."""
    body = _as_mapping(body)
    transfer = body.get("transfer")
    return {
        "body_keys": sorted(body.keys()),
        "transfer_type": type(transfer).__name__,
        "transfer_value": transfer if isinstance(transfer, str) else None,
        "transfer_keys": sorted(transfer.keys()) if isinstance(transfer, dict) else None,
    }
