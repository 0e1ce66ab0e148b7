from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator


class KeyedLocks:
    """
    One lock per key, created on demand and dropped again by `prune`.

    `locked` re-checks after acquiring that its lock is still the registered
    one, so a key pruned while a caller was waiting never ends up guarded by
    two different locks.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict

    def __len__(self) -> int:
        with self._lock_lock:
            return len(self._locks)

    def _get_lock(self, key: str) -> threading.Lock:
        with self._lock_lock:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        while True:
            lock = self._get_lock(key)
            lock.acquire()
            with self._lock_lock:
                current = self._locks.get(key)
            if current is lock:
                break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def prune(self, is_live: Callable[[str], bool]) -> int:
        """Drop idle locks whose key no longer has data behind it."""
        dropped = 0
        with self._lock_lock:
            for key, lock in list(self._locks.items()):
                if is_live(key) or not lock.acquire(blocking=False):
                    continue
                del self._locks[key]
                lock.release()
                dropped += 1
        return dropped
