"""
Per-(practitioner, date) advisory locks.

Every operation that reads a practitioner's occupancy and then writes to it
(booking, reschedule, reactivation, blocking, day closure) runs while holding
the lock of that practitioner and date, so the check and the write are
atomic with respect to each other within this process. Across processes the
store's exclusion constraint rejects overlapping appointments.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, Optional, Tuple

from config import settings
from utils.exceptions import StoreUnavailableError

LockKey = Tuple[str, date]


class DayLockRegistry:
    """Registry of asyncio locks keyed by (practitioner_id, date)."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._locks: Dict[LockKey, asyncio.Lock] = {}
        self._holders: Dict[LockKey, int] = {}

    @asynccontextmanager
    async def hold(self, practitioner_id: str, day: date) -> AsyncIterator[None]:
        """
        Hold the lock of a practitioner's day.

        Raises:
            StoreUnavailableError: If the lock cannot be acquired within the timeout
        """
        key = (practitioner_id, day)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        timeout = self.timeout if self.timeout is not None else settings.lock_timeout_seconds

        try:
            try:
                async with asyncio.timeout(timeout):
                    await lock.acquire()
            except TimeoutError as e:
                raise StoreUnavailableError(
                    "Calendar is busy, please retry the operation"
                ) from e

            try:
                yield
            finally:
                lock.release()
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def is_locked(self, practitioner_id: str, day: date) -> bool:
        lock = self._locks.get((practitioner_id, day))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
