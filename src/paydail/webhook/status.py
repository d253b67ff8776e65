"""Provider transfer state -> canonical deposit status."""

from dataclasses import dataclass
from typing import Callable, Optional

from paydail.ledger.models import DepositStatus


@dataclass(frozen=True)
class StatusRule:
    name: str
    matches: Callable[[str], bool]
    status: DepositStatus


# Order matters: "unconfirmed" contains "confirmed".
STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule("unconfirmed", lambda s: "unconfirmed" in s or "unconfirm" in s, DepositStatus.PENDING),
    StatusRule("pending", lambda s: "pending" in s, DepositStatus.PENDING),
    StatusRule("complete", lambda s: "complete" in s, DepositStatus.COMPLETED),
    StatusRule("confirmed", lambda s: "confirmed" in s, DepositStatus.CONFIRMED),
    StatusRule("failed", lambda s: "failed" in s or "rejected" in s, DepositStatus.FAILED),
)


def normalize_status(state: Optional[str]) -> DepositStatus:
    """Map a provider state string to a canonical status (default pending)."""
    text = (state or "").lower()
    for rule in STATUS_RULES:
        if rule.matches(text):
            return rule.status
    return DepositStatus.PENDING
