import asyncio
from typing import Dict, Hashable


class KeyedLocks:
    """
    One asyncio.Lock per key.

    Mutations of the same entity queue up behind each other while different
    entities proceed concurrently.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def __call__(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def discard(self, key: Hashable) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def clear(self) -> None:
        self._locks.clear()
