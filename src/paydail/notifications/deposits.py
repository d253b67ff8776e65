"""Deposit notification wording.

Notifications are stored rows, read by the dashboard; nothing is pushed.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from paydail.ledger.models import DepositStatus


@dataclass(frozen=True)
class DepositNotice:
    """Title, message and type of one deposit notification."""

    title: str
    message: str
    notification_type: str
    status: str


def format_amount(amount: Decimal) -> str:
    """Plain decimal without trailing zeros or exponent (1.50000 -> 1.5)."""
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def format_naira(value: Decimal) -> str:
    """Naira with thousands separators and at most two decimals."""
    rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{rounded:,.2f}"
    return text[:-3] if text.endswith(".00") else text


def build_deposit_notice(
    status: str,
    amount: Decimal,
    coin: Optional[str],
    naira_amount: Decimal,
) -> DepositNotice:
    """Build the notification for a deposit now in ``status``.

    Pending and failed have their own wording; every other status
    (confirmed, completed) reads as confirmed.
    """
    status = (status or "").lower()
    coin_label = (coin or "").upper()
    amount_label = format_amount(amount)

    if status == DepositStatus.PENDING.value:
        return DepositNotice(
            title="Deposit Pending",
            message=f"Your deposit of {amount_label} {coin_label} is pending confirmation.",
            notification_type="deposit_pending",
            status=status,
        )

    if status == DepositStatus.FAILED.value:
        return DepositNotice(
            title="Deposit Failed",
            message=(
                f"Your deposit of {amount_label} {coin_label} failed. "
                "If this wasn't expected, contact support."
            ),
            notification_type="deposit_failed",
            status=status,
        )

    return DepositNotice(
        title="Deposit Confirmed",
        message=(
            f"Your deposit of {amount_label} {coin_label} is confirmed and you have "
            f"received ₦{format_naira(naira_amount)}."
        ),
        notification_type="deposit_confirmed",
        status=status,
    )
