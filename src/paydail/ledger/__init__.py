"""Ledger module for users, naira balances, deposits and notifications."""

from paydail.ledger.database import get_db, init_db, unit_of_work
from paydail.ledger.models import (
    CREDITABLE_STATUSES,
    AdminRate,
    Deposit,
    DepositStatus,
    Network,
    Notification,
    User,
    is_creditable,
)
from paydail.ledger.repository import LedgerRepository

__all__ = [
    # Models
    "User",
    "Deposit",
    "Notification",
    "AdminRate",
    # Enums
    "DepositStatus",
    "Network",
    "CREDITABLE_STATUSES",
    "is_creditable",
    # Database
    "get_db",
    "init_db",
    "unit_of_work",
    "LedgerRepository",
]
