"""Defines common Value Objects used across the caching subsystem.

These objects represent simple values like keys and prefixes, plus the
structured records passed between the Fast Tier, the eviction policies
and the stats collector.
"""

from dataclasses import dataclass, field
from typing import Any, NewType, NamedTuple, Tuple, TypedDict

# === Caching Context ===
CacheKey = NewType("CacheKey", str)        # Unique key for a cache entry
CachePrefix = NewType("CachePrefix", str)  # Key prefix used for bulk invalidation (e.g., 'product:')
CacheTag = NewType("CacheTag", str)        # Free-form label for tag invalidation (e.g., 'products')


@dataclass
class CacheEntry:
    """A Fast Tier entry.

    ``created_at`` is the time of the last write and drives expiry.
    ``last_accessed`` tracks recency separately so that touching an entry
    never extends its lifetime. ``write_seq`` and ``use_seq`` are sequence
    stamps handed out by the Fast Tier; they order events that happen within
    the same clock tick.
    """
    key: CacheKey
    value: Any
    created_at: float
    ttl_seconds: float
    access_count: int = 1
    last_accessed: float = 0.0
    write_seq: int = 0
    use_seq: int = 0
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_seconds

    def is_live(self, now: float) -> bool:
        """An entry is live iff now < created_at + ttl_seconds."""
        return now < self.expires_at

    def remaining_ttl(self, now: float) -> float:
        return max(0.0, self.expires_at - now)


class EvictionCandidate(NamedTuple):
    """The view of an entry an eviction policy is allowed to see."""
    key: CacheKey
    created_at: float
    last_accessed: float
    access_count: int
    write_seq: int
    use_seq: int


class CacheStats(TypedDict):
    """Snapshot returned by ``CacheManager.stats()``."""
    entry_count: int
    max_size: int
    policy: str
    hits: int
    misses: int
    fast_hits: int
    durable_hits: int
    sets: int
    deletes: int
    evictions: int
    expirations: int
    durable_errors: int
    deserialization_errors: int
    producer_calls: int
    coalesced_waits: int
    hit_rate: float  # Percentage of lookups served from either tier
