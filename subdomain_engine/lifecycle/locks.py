# subdomain_engine/lifecycle/locks.py
"""Per-record locks so the request path and the sweeper never interleave on one record."""

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Hashable


class RecordLockRegistry:
    """Hands out one lock per key; unused locks are dropped on release."""

    def __init__(self):
        self._guard = Lock()
        self._locks: Dict[Hashable, Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable, blocking: bool = True):
        """
        Hold the lock for `key`.

        Yields True once held. With blocking=False yields False immediately
        if another caller holds it.
        """
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._holders[key] = self._holders.get(key, 0) + 1

        acquired = lock.acquire(blocking=blocking)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
            with self._guard:
                self._holders[key] -= 1
                if self._holders[key] == 0:
                    del self._holders[key]
                    del self._locks[key]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)
