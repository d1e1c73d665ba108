"""
Rebuild the metadata index from records left in the storage directory

Runs once, before the cache accepts calls. Per-record problems are absorbed:
corrupt records and leftover temp files are deleted, unreadable ones skipped.
Only failing to list the directory aborts startup.
"""
from dataclasses import dataclass
import logging

from spillcache.codec import JsonRecordCodec
from spillcache.exceptions import CorruptRecord, StorageIOError
from spillcache.index import EntryDescriptor, MetadataIndex, now_ms
from spillcache.store import TEMP_PREFIX, EntryStore

logger = logging.getLogger(__name__)


@dataclass
class RehydrationReport:
    loaded: int = 0
    expired: int = 0
    corrupt: int = 0
    skipped: int = 0
    duplicates: int = 0
    partial: int = 0


class Rehydrator:
    def __init__(self, store: EntryStore, index: MetadataIndex, codec: JsonRecordCodec):
        self._store = store
        self._index = index
        self._codec = codec

    def run(self) -> RehydrationReport:
        report = RehydrationReport()
        now = now_ms()

        # StorageUnavailable propagates, startup cannot continue without a listing
        for locator in self._store.list():
            # an unpublished write is not a record, whatever it contains
            if locator.startswith(TEMP_PREFIX):
                logger.debug(f"Dropping leftover partial write {locator}")
                report.partial += 1
                self._drop(locator)
                continue

            try:
                data = self._store.read(locator)
            except StorageIOError as e:
                logger.warning(f"Skipping unreadable record {locator}: {e}")
                report.skipped += 1
                continue

            try:
                record = self._codec.decode(data)
            except CorruptRecord as e:
                logger.warning(f"Dropping corrupt record {locator}: {e}")
                report.corrupt += 1
                self._drop(locator)
                continue

            # size is what sits on disk, the payload itself is not kept
            descriptor = EntryDescriptor(
                key=record.key,
                locator=locator,
                expires_at=record.expires_at,
                size=len(data),
            )

            if descriptor.is_expired(now):
                logger.debug(f"Dropping expired record {locator} for '{descriptor.key}'")
                report.expired += 1
                self._drop(locator)
                continue

            existing = self._index.get(descriptor.key)
            if existing is not None:
                report.duplicates += 1
                # the later expiry wins, the other record is deleted
                if existing.expires_at >= descriptor.expires_at:
                    logger.debug(f"Dropping older duplicate {locator} for '{descriptor.key}'")
                    self._drop(locator)
                    continue
                logger.debug(f"Dropping older duplicate {existing.locator} for '{descriptor.key}'")
                self._index.put(descriptor)
                self._drop(existing.locator)
                continue

            self._index.put(descriptor)
            report.loaded += 1

        logger.info(
            f"Rehydrated {len(self._index)} entries ({self._index.size()} bytes) from {self._store.path}: "
            f"{report.expired} expired, {report.corrupt} corrupt, {report.skipped} skipped, "
            f"{report.duplicates} duplicates, {report.partial} partial writes"
        )
        return report

    def _drop(self, locator: str) -> None:
        try:
            self._store.delete(locator)
        except StorageIOError as e:
            logger.warning(f"Could not delete record {locator}: {e}")
