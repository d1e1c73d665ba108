"""
Soonest-expiry eviction: entries closest to their expiry go first.
"""
from typing import List

from spillcache.index import EntryDescriptor

import logging
logger = logging.getLogger(__name__)

class SoonestExpiry:
    name = "soonest_expiry"

    def rank(self, candidates: List[EntryDescriptor]) -> List[EntryDescriptor]:
        ranked = sorted(candidates, key=lambda d: d.expires_at)
        logger.debug(f"Eviction order: {[d.key for d in ranked]}")
        return ranked
