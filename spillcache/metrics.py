"""
Counters describing how a cache instance is being used
"""
from threading import Lock


class CacheMetrics:
    def __init__(self):
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._evictions = 0
        self._expirations = 0

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def record_set(self) -> None:
        with self._lock:
            self._sets += 1

    def record_delete(self) -> None:
        with self._lock:
            self._deletes += 1

    def record_evictions(self, n: int) -> None:
        with self._lock:
            self._evictions += n

    def record_expirations(self, n: int = 1) -> None:
        with self._lock:
            self._expirations += n

    def hit_ratio(self) -> float:
        """
        Caching effectiveness
        """
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total if total > 0 else 0.0

    def as_dict(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "sets": self._sets,
                "deletes": self._deletes,
                "evictions": self._evictions,
                "expirations": self._expirations,
                "hit_ratio": self._hits / total if total > 0 else 0.0,
            }
