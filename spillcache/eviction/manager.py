import logging
from typing import Callable, List, Optional

from spillcache.index import EntryDescriptor, MetadataIndex, now_ms
from spillcache.eviction.algos.furthest_expiry import FurthestExpiry
from spillcache.eviction.algos.soonest_expiry import SoonestExpiry

logger = logging.getLogger(__name__)

ALGORITHMS = {
    "furthest_expiry": FurthestExpiry,
    "soonest_expiry": SoonestExpiry,
}

# removal path supplied by the cache: returns False when the entry was already gone
RemoveFn = Callable[[EntryDescriptor], bool]


class EvictionManager:
    """
    Keeps the index under a byte budget
    Input:
        - `index`: MetadataIndex of the cache
        - `algo_name`: order in which live entries are evicted
            + "furthest_expiry" (default), "soonest_expiry"
    """
    def __init__(self, index: MetadataIndex, algo_name: str = "furthest_expiry"):
        self._index = index
        self.set_algo(algo_name)
        self._n_evicts = 0
        self._n_expired = 0

    @property
    def algo_name(self) -> str:
        return self._algo.name

    def set_algo(self, algo_name: str = "furthest_expiry") -> None:
        if algo_name not in ALGORITHMS:
            raise ValueError(f"Unknown eviction algorithm: {algo_name}")
        self._algo = ALGORITHMS[algo_name]()

    def _over_budget(self, max_size: int, incoming: int) -> bool:
        return self._index.size() + incoming > max_size

    def clean_expired(self, remove: RemoveFn, now: Optional[int] = None) -> List[str]:
        """
        Remove every expired entry, regardless of how much space that frees
        """
        if now is None:
            now = now_ms()
        removed = []
        for descriptor in self._index.entries():
            if descriptor.is_expired(now) and remove(descriptor):
                removed.append(descriptor.key)
        self._n_expired += len(removed)
        if removed:
            logger.debug(f"Removed {len(removed)} expired entries: {removed}")
        return removed

    def free_up_space(self, max_size: int, incoming: int, remove: RemoveFn) -> List[str]:
        """
        Make room for `incoming` bytes
          1) over budget -> sweep all expired entries
          2) still over budget -> evict live entries in algorithm order, one at a
             time, until the budget holds or no candidate is left
        Return the keys removed in step 2.
        """
        if not max_size:
            return []

        if self._over_budget(max_size, incoming):
            self.clean_expired(remove)

        if not self._over_budget(max_size, incoming):
            return []

        evicted = []
        for descriptor in self._algo.rank(self._index.entries()):
            if not remove(descriptor):
                logger.debug(f"Eviction candidate already gone '{descriptor.key}'")
                continue
            evicted.append(descriptor.key)
            self._n_evicts += 1
            logger.info(f"Evicted key '{descriptor.key}' ({descriptor.size} bytes) to stay under {max_size} bytes")
            if not self._over_budget(max_size, incoming):
                break

        if self._over_budget(max_size, incoming):
            logger.warning(
                f"Could not free enough space: {self._index.size()} + {incoming} bytes over budget {max_size}"
            )
        return evicted

    def get_metrics(self) -> dict:
        return {
            "n_evicts": self._n_evicts,
            "n_expired": self._n_expired,
        }
