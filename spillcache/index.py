from dataclasses import dataclass
from typing import Dict, List, Optional
from threading import Lock
import time
import logging

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class EntryDescriptor:
    """
    Metadata of one cached entry, the payload itself lives in the store
    """
    key: str
    locator: str
    expires_at: int
    size: int

    def is_expired(self, now: Optional[int] = None) -> bool:
        if now is None:
            now = now_ms()
        return now >= self.expires_at


class MetadataIndex:
    """
    A dictionary of key -> EntryDescriptor plus the running total of bytes used
    Every mutation updates the mapping and the counter under one lock.
    """
    def __init__(self):
        self._entries: Dict[str, EntryDescriptor] = {}
        self._current_size = 0
        self._lock = Lock()

    """
    -----------------------MUTATIONS-------------------------
    """
    def put(self, descriptor: EntryDescriptor) -> Optional[EntryDescriptor]:
        """
        - Insert a descriptor under its key
        - Overwrite (not merge) an existing one and return it
        """
        with self._lock:
            replaced = self._entries.pop(descriptor.key, None)
            if replaced is not None:
                self._current_size -= replaced.size
            self._entries[descriptor.key] = descriptor
            self._current_size += descriptor.size
        logger.debug(f"Indexed '{descriptor.key}' -> {descriptor.locator} ({descriptor.size} bytes)")
        return replaced

    def remove(self, key: str, locator: Optional[str] = None) -> Optional[EntryDescriptor]:
        """
        - Remove the descriptor of key and return it
        - With `locator`, only remove it if it still points at that record
        - Return None if nothing was removed
        """
        with self._lock:
            current = self._entries.get(key)
            if current is None:
                return None
            if locator is not None and current.locator != locator:
                return None
            del self._entries[key]
            self._current_size -= current.size
        logger.debug(f"Unindexed '{key}' ({current.size} bytes)")
        return current

    def clear(self) -> List[EntryDescriptor]:
        with self._lock:
            removed = list(self._entries.values())
            self._entries.clear()
            self._current_size = 0
        return removed

    """
    -----------------------QUERIES-------------------------
    """
    def get(self, key: str) -> Optional[EntryDescriptor]:
        with self._lock:
            return self._entries.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def entries(self) -> List[EntryDescriptor]:
        """
        Snapshot of all descriptors in insertion order
        """
        with self._lock:
            return list(self._entries.values())

    def locators(self) -> List[str]:
        with self._lock:
            return [d.locator for d in self._entries.values()]

    def size(self) -> int:
        with self._lock:
            return self._current_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
