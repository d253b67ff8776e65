"""Utility modules."""

from paydail.utils.locks import (
    LockTimeoutError,
    clear_user_locks,
    get_user_lock,
    user_balance_lock,
)

__all__ = [
    "LockTimeoutError",
    "clear_user_locks",
    "get_user_lock",
    "user_balance_lock",
]
