"""In-process keyed locks."""

import asyncio
import weakref


class KeyedLocks:
    """One ``asyncio.Lock`` per key, created on demand.

    Locks are held weakly and disappear once no coroutine is using them.
    Only serializes coroutines inside this process.
    """

    def __init__(self, name: str):
        self.name = name
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __call__(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
