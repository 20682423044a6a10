# microtools/repositories/locks.py
# Per-key asyncio locks for serialising read-modify-write on one object

from __future__ import annotations

import asyncio
import weakref


class KeyedLocks:
    """Hands out one asyncio.Lock per key.

    Entries are weakly held, so a key's lock disappears once nobody is
    waiting on it or holding it.
    """

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
