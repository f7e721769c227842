"""Domain Events related to cache entry lifecycle and Durable Tier health.

Examples include events for when entries are evicted or expire, when the
durable store fails, and when a producer is run to fill a cold key.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class CacheEvent:
    """Base class for cache domain events."""
    pass


@dataclass
class EntryEvicted(CacheEvent):
    """Event triggered when the Fast Tier drops an entry to make room."""
    key: str
    policy: str  # e.g., 'lru', 'lfu', 'fifo'
    timestamp: float = field(default_factory=time.time)


@dataclass
class EntryExpired(CacheEvent):
    """Event triggered when a stale entry is removed (lazily or by a sweep)."""
    key: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class DurableStoreFailed(CacheEvent):
    """Event triggered when a Durable Tier call fails and the cache degrades."""
    operation: str  # 'get', 'put', 'delete', 'keys'
    key: str
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class PayloadRejected(CacheEvent):
    """Event triggered when a durable payload cannot be decoded and is treated as a miss."""
    key: str
    reason: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ProducerInvoked(CacheEvent):
    """Event triggered when get_or_set runs a producer for a cold key."""
    key: str
    latency_ms: float
    waiters: int = 0  # Callers that shared this producer run
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
