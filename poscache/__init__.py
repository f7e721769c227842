"""poscache: tiered caching for the SmartPOS backend.

A process-local Fast Tier backed by an optional Durable Tier, with pluggable
eviction (LRU, LFU, FIFO), lazy TTL expiry, prefix/tag invalidation and
single-flight memoization.
"""

from poscache.core.cache_manager import CacheManager
from poscache.domain.exceptions import (
    CacheClosedError,
    CacheError,
    ConfigurationError,
    DurableStoreError,
    DurableStoreUnavailableError,
    SerializationError,
)
from poscache.domain.interfaces.durable_store import DurableStore

__version__ = "1.0.0"

__all__ = [
    "CacheManager",
    "DurableStore",
    "CacheError",
    "CacheClosedError",
    "ConfigurationError",
    "DurableStoreError",
    "DurableStoreUnavailableError",
    "SerializationError",
]
