from typing import List, Optional
import logging

from spillcache.cache import Cache
from spillcache.exceptions import CacheException
from spillcache.parser import CommandParser

logger = logging.getLogger(__name__)

class Executor:
    """
    Runs text commands against a cache and formats the replies
    Values travel as UTF-8 text on this surface.
    """
    def __init__(self, cache: Cache, parser: CommandParser):
        self._dispatch = {
            "set": self._set,
            "get": self._get,
            "del": self._delete,
            "keys": self._keys,
            "reset": self._reset,
            "size": cache.size,
            "stats": self._stats,
        }
        self._cache = cache
        self._parser = parser

    def _set(self, key: str, value: str, ttl: Optional[str] = None) -> str:
        self._cache.set(key, value.encode("utf-8"), None if ttl is None else float(ttl))
        return "OK"

    def _get(self, key: str) -> str:
        value = self._cache.get(key)
        if value is None:
            return "(nil)"
        return value.decode("utf-8", errors="replace")

    def _delete(self, key: str) -> bool:
        return self._cache.delete(key)

    def _keys(self) -> str:
        keys: List[str] = self._cache.keys()
        return " ".join(keys) if keys else "(empty)"

    def _reset(self, key: Optional[str] = None) -> str:
        self._cache.reset(key)
        return "OK"

    def _stats(self) -> str:
        return "\n".join(f"{name}: {value}" for name, value in self._cache.stats().items())

    def execute(self, command_str: str) -> str:
        """
        Execute a command on the cache
        """
        logger.debug(f"Command string: {command_str}")
        try:
            cmd, args = self._parser.parse(command_str)
            logger.debug(f"Parsed command: {cmd} with args: {args}")
            result = self._dispatch[cmd](*args)

            if isinstance(result, (int, bool)):
                result = f"(integer) {int(result)}"

            logger.debug(f"Executed command: {cmd} with args: {args}, result: {result}")
            return str(result)
        except (CacheException, ValueError, TypeError) as e:
            return f"ERROR: {str(e)}"
