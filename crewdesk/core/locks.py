import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import Hashable


class KeyedLocks:
    """Per-key asyncio locks, e.g. one per (department, date).

    Serializes callers inside a single process. Cross-process exclusion is
    the database's job (advisory or row locks taken by the repositories).
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._lock_for(key)
        async with lock:
            yield


day_locks = KeyedLocks()
appointment_locks = KeyedLocks()
