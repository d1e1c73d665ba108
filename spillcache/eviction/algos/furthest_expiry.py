"""
Furthest-expiry eviction: entries with the longest remaining lifetime go first.

This mirrors how the store historically freed space. Once expired entries are
swept, the sort is by `expires_at` descending; Python's sort is stable so
entries with equal expiry keep their insertion order.
"""
from typing import List

from spillcache.index import EntryDescriptor

import logging
logger = logging.getLogger(__name__)

class FurthestExpiry:
    name = "furthest_expiry"

    def rank(self, candidates: List[EntryDescriptor]) -> List[EntryDescriptor]:
        """
        Order eviction candidates, the first one is evicted first
        """
        ranked = sorted(candidates, key=lambda d: d.expires_at, reverse=True)
        logger.debug(f"Eviction order: {[d.key for d in ranked]}")
        return ranked
