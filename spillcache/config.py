from dataclasses import dataclass
import logging
import math
import os

from dotenv import find_dotenv, load_dotenv

from spillcache.eviction.manager import ALGORITHMS

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got '{raw}'")


@dataclass
class CacheConfig:
    """
    Settings of one cache instance
      - `path`: directory holding the records (created if absent)
      - `ttl`: default entry lifetime in seconds
      - `max_size`: byte budget over all records, 0 means unlimited
      - `rehydrate_on_start`: rebuild the index from `path` on construction
      - `eviction_policy`: order in which live entries are evicted
      - `fsync`: flush records to disk before publishing them
    """
    path: str = "cache/"
    ttl: float = 60
    max_size: int = 0
    rehydrate_on_start: bool = True
    eviction_policy: str = "furthest_expiry"
    fsync: bool = True

    def __post_init__(self) -> None:
        if not self.path or not str(self.path).strip():
            raise ValueError("path must be a non-empty directory name")
        self.path = os.fspath(self.path)
        if self.ttl is None or not math.isfinite(self.ttl) or self.ttl < 0:
            raise ValueError(f"ttl must be a finite number >= 0, got {self.ttl}")
        if self.max_size is None or self.max_size < 0:
            raise ValueError(f"max_size must be >= 0, got {self.max_size}")
        if self.eviction_policy not in ALGORITHMS:
            raise ValueError(f"Unknown eviction policy: {self.eviction_policy}")

    @classmethod
    def from_env(cls, prefix: str = "SPILLCACHE_", dotenv: bool = True, **overrides) -> "CacheConfig":
        """
        Build a config from environment variables (and a .env file if present)
        Explicit keyword overrides win over the environment.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        values = {}
        raw = os.getenv(f"{prefix}PATH")
        if raw:
            values["path"] = raw
        raw = os.getenv(f"{prefix}TTL")
        if raw:
            values["ttl"] = float(raw)
        raw = os.getenv(f"{prefix}MAX_SIZE")
        if raw:
            values["max_size"] = int(raw)
        raw = os.getenv(f"{prefix}REHYDRATE")
        if raw:
            values["rehydrate_on_start"] = _parse_bool(f"{prefix}REHYDRATE", raw)
        raw = os.getenv(f"{prefix}EVICTION")
        if raw:
            values["eviction_policy"] = raw.strip().lower()

        values.update({k: v for k, v in overrides.items() if v is not None})
        logger.debug(f"Config from environment: {values}")
        return cls(**values)

