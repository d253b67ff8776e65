"""Per-user locking for naira balance updates.

Serializes the read-prior-deposit / compute-delta / credit / upsert
sequence for one user within a process. The credit itself is also an
atomic SQL increment, so cross-process deliveries cannot lose updates.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)

# Lock registry: user_id -> asyncio.Lock. An entry lives only while some
# holder or waiter still references the lock.
_user_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def get_user_lock(user_id: int) -> asyncio.Lock:
    """Get or create the lock for a user."""
    lock = _user_locks.get(user_id)
    if lock is None:
        lock = _user_locks[user_id] = asyncio.Lock()
    return lock


@asynccontextmanager
async def user_balance_lock(
    user_id: int,
    timeout: Optional[float] = 30.0,
    operation: str = "balance_operation",
) -> AsyncIterator[None]:
    """Hold the user's balance lock for the duration of the block.

    Example:
        async with user_balance_lock(user_id, operation="deposit"):
            ...

    Raises:
        LockTimeoutError: if the lock is not acquired within ``timeout``
    """
    lock = get_user_lock(user_id)

    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout for user {user_id}: {operation}")
        raise LockTimeoutError(
            f"Could not acquire lock for user {user_id} within {timeout}s"
        )

    logger.debug(f"Lock acquired for user {user_id}: {operation}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released for user {user_id}: {operation}")


def clear_user_locks() -> None:
    """Clear all user locks (useful for testing)."""
    _user_locks.clear()
