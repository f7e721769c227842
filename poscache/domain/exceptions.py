"""Exception types raised inside the caching subsystem.

A cache miss is never an exception. Durable Tier and payload errors are
raised by adapters and the codec, then recovered inside the cache manager;
only caller mistakes (bad ttl, bad configuration, use after close) reach
application code.
"""

from typing import Optional


class CacheError(Exception):
    """Base class for all poscache errors."""


class DurableStoreError(CacheError):
    """A Durable Tier operation failed."""


class DurableStoreUnavailableError(DurableStoreError):
    """The durable store could not be reached or refused the operation."""

    def __init__(self, operation: str, key: str = "", cause: Optional[Exception] = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Durable store unavailable during {operation}({key!r}){detail}")


class SerializationError(CacheError):
    """A value could not be encoded, or a durable payload could not be decoded."""


class ConfigurationError(CacheError, ValueError):
    """Invalid cache configuration (unknown policy, backend, serializer...)."""


class CacheClosedError(CacheError):
    """An operation was attempted on a cache manager that has been closed."""
