class CacheException(Exception):
    """Base class for all spillcache exceptions."""
    pass

class EntrySizeExceeded(CacheException):
    """Raised when a serialized record is larger than the whole cache budget."""
    def __init__(self, key: str, size: int, max_size: int):
        self.key = key
        self.size = size
        self.max_size = max_size
        super().__init__(f"Entry '{key}' is {size} bytes, cache budget is {max_size} bytes")

class StorageIOError(CacheException):
    """Raised when writing, reading or deleting a record fails."""
    def __init__(self, message: str, locator: str = None):
        self.locator = locator
        super().__init__(message)

class RecordNotFound(StorageIOError):
    """The record behind a locator does not exist."""
    def __init__(self, locator: str):
        super().__init__(f"Record '{locator}' does not exist", locator)

class CorruptRecord(CacheException):
    """Raised when a persisted record cannot be decoded."""
    pass

class StorageUnavailable(CacheException):
    """The storage directory cannot be created or listed."""
    pass

class CacheClosed(CacheException):
    def __init__(self, message="Operation on a closed cache"):
        super().__init__(message)

class ParserError(CacheException):
    """Raised when there is an error in command parsing."""
    pass
