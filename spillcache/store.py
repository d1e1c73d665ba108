"""
Directory-backed storage for serialized records

Records are addressed by locators, random file names that do not depend on
the cache key. No policy lives here: the store only writes, reads, deletes
and lists blobs.
"""
from typing import List
import logging
import os
import secrets
import tempfile

from spillcache.exceptions import RecordNotFound, StorageIOError, StorageUnavailable

logger = logging.getLogger(__name__)

LOCATOR_PREFIX = "cache_"
LOCATOR_SUFFIX = ".dat"
TEMP_PREFIX = ".tmp-"
TEMP_SUFFIX = ".part"


class EntryStore:
    def __init__(self, path: str, fsync: bool = True):
        self._path = os.path.abspath(os.fspath(path))
        self._fsync = fsync

    @property
    def path(self) -> str:
        return self._path

    def open(self) -> None:
        """
        Make sure the storage directory exists
        Raise StorageUnavailable if it cannot be created or is not a directory
        """
        try:
            os.makedirs(self._path, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create storage directory '{self._path}': {e}") from e
        if not os.path.isdir(self._path):
            raise StorageUnavailable(f"Storage path '{self._path}' is not a directory")
        logger.debug(f"Storage opened at {self._path}")

    def _resolve(self, locator: str) -> str:
        if not locator or os.path.basename(locator) != locator or locator in (".", ".."):
            raise ValueError(f"Invalid locator: {locator!r}")
        return os.path.join(self._path, locator)

    def exists(self, locator: str) -> bool:
        return os.path.isfile(self._resolve(locator))

    def new_locator(self) -> str:
        """
        Generate a fresh fixed-width locator that no existing record uses
        """
        while True:
            locator = f"{LOCATOR_PREFIX}{secrets.token_hex(8)}{LOCATOR_SUFFIX}"
            if not self.exists(locator):
                return locator

    def write(self, locator: str, data: bytes) -> None:
        """
        Write-then-publish:
          1) write into a temp file in the same directory
          2) flush (and fsync)
          3) os.replace onto the final name, readers never see a partial record
        """
        target = self._resolve(locator)
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=self._path)
        except OSError as e:
            raise StorageIOError(f"Cannot create temp file for '{locator}': {e}", locator) from e

        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
                tmp.flush()
                if self._fsync:
                    os.fsync(tmp.fileno())
            os.replace(tmp_path, target)
        except OSError as e:
            raise StorageIOError(f"Cannot write record '{locator}': {e}", locator) from e
        finally:
            # replace did not happen, clean the temp file
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temp file {tmp_path}")
        logger.debug(f"Wrote record {locator} ({len(data)} bytes)")

    def read(self, locator: str) -> bytes:
        path = self._resolve(locator)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise RecordNotFound(locator) from e
        except OSError as e:
            raise StorageIOError(f"Cannot read record '{locator}': {e}", locator) from e

    def delete(self, locator: str) -> None:
        """
        Delete a record, a record that is already gone is not an error
        """
        path = self._resolve(locator)
        try:
            os.remove(path)
            logger.debug(f"Deleted record {locator}")
        except FileNotFoundError:
            logger.debug(f"Record {locator} already gone")
        except OSError as e:
            raise StorageIOError(f"Cannot delete record '{locator}': {e}", locator) from e

    def list(self, include_partial: bool = True) -> List[str]:
        """
        - List names of regular files in the storage directory
        - `include_partial=False` hides temp files of writes still in flight
        """
        try:
            with os.scandir(self._path) as it:
                names = [entry.name for entry in it if entry.is_file()]
        except OSError as e:
            raise StorageUnavailable(f"Cannot list storage directory '{self._path}': {e}") from e
        if not include_partial:
            names = [n for n in names if not n.startswith(TEMP_PREFIX)]
        return sorted(names)

