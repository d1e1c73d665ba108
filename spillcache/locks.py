"""
Per-key locks

Set, delete and eviction of one key must not interleave. Locks are created on
demand and dropped again once no thread holds or waits for them, so the
registry does not grow with the number of keys ever seen.
"""
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = Lock()
        self.users = 0


class KeyLocks:
    def __init__(self):
        self._locks: Dict[str, _KeyLock] = {}
        self._guard = Lock()

    def _checkout(self, key: str) -> _KeyLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _KeyLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(key, None)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """
        Block until the key is free, hold it for the duration of the block
        """
        entry = self._checkout(key)
        try:
            with entry.lock:
                yield
        finally:
            self._checkin(key, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
