"""Per-resource mutual exclusion."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class LockRegistry:
    """Hand out one lock per resource id, created on first use.

    Fetched records are short-lived copies, so the lock cannot live on the
    record itself; callers acting on the same remote object share the lock
    through the registry instead.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self.lock_for(key):
            yield

    def __contains__(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._locks
