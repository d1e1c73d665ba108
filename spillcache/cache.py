"""
Cache facade

Composes the metadata index, the record store, the eviction manager and the
rehydrator into the public operations: set, get, delete, keys, reset, close.

Locking:
    - the index lock only covers in-memory updates
    - a per-key lock serialises set/delete/eviction of one key across storage I/O
    - bounded caches admit one evict-write-put sequence at a time, taken before
      the key lock, so eviction may wait on other keys without deadlocking
"""
from contextlib import nullcontext
from dataclasses import replace
from threading import Lock
from typing import List, Optional
import logging
import math

from spillcache.codec import JsonRecordCodec, Record
from spillcache.config import CacheConfig
from spillcache.eviction.manager import EvictionManager
from spillcache.exceptions import CacheClosed, CorruptRecord, EntrySizeExceeded, RecordNotFound, StorageIOError
from spillcache.index import EntryDescriptor, MetadataIndex, now_ms
from spillcache.locks import KeyLocks
from spillcache.metrics import CacheMetrics
from spillcache.rehydrator import Rehydrator
from spillcache.store import EntryStore

logger = logging.getLogger(__name__)


class Cache:
    def __init__(self, config: Optional[CacheConfig] = None, *, codec: Optional[JsonRecordCodec] = None, **overrides):
        if config is None:
            config = CacheConfig(**overrides)
        elif overrides:
            config = replace(config, **overrides)
        self._config = config
        self._codec = codec or JsonRecordCodec()

        self._store = EntryStore(config.path, fsync=config.fsync)
        self._index = MetadataIndex()
        self._eviction = EvictionManager(self._index, algo_name=config.eviction_policy)
        self._key_locks = KeyLocks()
        self._admission = Lock()
        self.metrics = CacheMetrics()
        self._closed = False

        # StorageUnavailable aborts construction
        self._store.open()
        self.rehydration = None
        if config.rehydrate_on_start:
            self.rehydration = Rehydrator(self._store, self._index, self._codec).run()
        logger.debug(f"Cache ready at {self._store.path} with {len(self._index)} entries")

    @classmethod
    def from_env(cls, **overrides) -> "Cache":
        return cls(CacheConfig.from_env(**overrides))

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def path(self) -> str:
        return self._store.path

    @staticmethod
    def is_cacheable_value(value) -> bool:
        return isinstance(value, (bytes, bytearray, memoryview))

    """
    -----------------------HELPERS-------------------------
    """
    def _check_open(self) -> None:
        if self._closed:
            raise CacheClosed()

    def _remove(self, descriptor: EntryDescriptor) -> bool:
        """
        Shared removal path of delete, lazy expiry, eviction and reset
        Caller holds the key lock of descriptor.key.
        """
        removed = self._index.remove(descriptor.key, descriptor.locator)
        if removed is None:
            return False
        try:
            self._store.delete(removed.locator)
        except StorageIOError:
            # record is still there, keep it reachable
            self._index.put(removed)
            raise
        return True

    def _evict(self, descriptor: EntryDescriptor) -> bool:
        with self._key_locks.hold(descriptor.key):
            return self._remove(descriptor)

    def _delete_locked(self, key: str) -> bool:
        descriptor = self._index.get(key)
        if descriptor is None:
            return False
        return self._remove(descriptor)

    """
    -----------------------OPERATIONS-------------------------
    """
    def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        """
        - Store value under key for `ttl` seconds (configured default when None, 0 is valid)
        - Replace any existing entry of key
        - Raise EntrySizeExceeded before touching anything if the record alone is over budget
        """
        self._check_open()
        if not isinstance(key, str):
            raise TypeError(f"Cache keys must be str, got {type(key).__name__}")
        if not self.is_cacheable_value(value):
            raise TypeError(f"Cache values must be bytes, got {type(value).__name__}")
        if ttl is None:
            ttl = self._config.ttl
        if not math.isfinite(ttl) or ttl < 0:
            raise ValueError(f"ttl must be a finite number >= 0, got {ttl}")

        expires_at = now_ms() + int(round(ttl * 1000))
        data = self._codec.encode(Record(key=key, value=bytes(value), expires_at=expires_at))
        size = len(data)
        max_size = self._config.max_size
        if max_size and size > max_size:
            raise EntrySizeExceeded(key, size, max_size)

        admission = self._admission if max_size else nullcontext()
        with admission, self._key_locks.hold(key):
            self._delete_locked(key)
            if max_size:
                evicted = self._eviction.free_up_space(max_size, size, self._evict)
                self.metrics.record_evictions(len(evicted))

            locator = self._store.new_locator()
            # a failed write raises before the index is touched
            self._store.write(locator, data)
            replaced = self._index.put(EntryDescriptor(key=key, locator=locator, expires_at=expires_at, size=size))
            if replaced is not None:
                self._store.delete(replaced.locator)

        self.metrics.record_set()
        logger.debug(f"Set '{key}' -> {locator} ({size} bytes, ttl {ttl}s)")

    def get(self, key: str) -> Optional[bytes]:
        """
        - Get value by key
        - Return None if key does not exist or has expired (expired entries are deleted)
        - Read and decode errors propagate
        """
        self._check_open()
        descriptor = self._index.get(key)
        if descriptor is None:
            self.metrics.record_miss()
            return None

        if descriptor.is_expired():
            with self._key_locks.hold(key):
                # a concurrent set may have replaced the expired entry
                current = self._index.get(key)
                if current is not None and current.locator == descriptor.locator:
                    logger.debug(f"Key '{key}' expired, deleting")
                    self._remove(current)
                    self.metrics.record_expirations()
                    current = None
            if current is None or current.is_expired():
                self.metrics.record_miss()
                return None
            descriptor = current

        try:
            data = self._store.read(descriptor.locator)
        except RecordNotFound:
            with self._key_locks.hold(key):
                current = self._index.get(key)
                if current is None or current.locator != descriptor.locator:
                    # replaced or deleted while we were reading
                    self.metrics.record_miss()
                    return None
                logger.warning(f"Record {descriptor.locator} of '{key}' is missing, dropping entry")
                self._index.remove(key, descriptor.locator)
            raise

        record = self._codec.decode(data)
        if record.key != key:
            raise CorruptRecord(f"Record {descriptor.locator} holds key '{record.key}', expected '{key}'")
        self.metrics.record_hit()
        return record.value

    def delete(self, key: str) -> bool:
        """
        - Delete key and its record
        - Return False (not an error) if key does not exist
        """
        self._check_open()
        with self._key_locks.hold(key):
            deleted = self._delete_locked(key)
        if deleted:
            self.metrics.record_delete()
            logger.debug(f"Deleted key '{key}'")
        return deleted

    def keys(self) -> List[str]:
        """
        Snapshot of indexed keys, may include entries not yet lazily expired
        """
        self._check_open()
        return self._index.keys()

    def size(self) -> int:
        self._check_open()
        return self._index.size()

    def __len__(self) -> int:
        self._check_open()
        return len(self._index)

    def __contains__(self, key: str) -> bool:
        self._check_open()
        return key in self._index

    def reset(self, key: Optional[str] = None) -> None:
        """
        - With a key: same as delete
        - Without: remove every entry, then delete stray records the index does not know
        """
        self._check_open()
        if key is not None:
            self.delete(key)
            return

        removed = 0
        for descriptor in self._index.entries():
            with self._key_locks.hold(descriptor.key):
                if self._remove(descriptor):
                    removed += 1

        live = set(self._index.locators())
        strays = [locator for locator in self._store.list(include_partial=False) if locator not in live]
        for locator in strays:
            self._store.delete(locator)
        logger.info(f"Reset cache at {self._store.path}: {removed} entries, {len(strays)} stray records removed")

    def stats(self) -> dict:
        stats = self.metrics.as_dict()
        stats["swept_expired"] = self._eviction.get_metrics()["n_expired"]
        stats["entries"] = len(self._index)
        stats["current_size"] = self._index.size()
        stats["max_size"] = self._config.max_size
        return stats

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug(f"Closed cache at {self._store.path}")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
