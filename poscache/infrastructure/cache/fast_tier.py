"""In-process bounded entry store (the Fast Tier).

Holds at most ``max_size`` entries keyed by string. Liveness is not checked
here; the cache manager decides what a stale entry means. All mutations go
through one lock that is never held across an await.
"""

import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from poscache.domain.interfaces.eviction import EvictionPolicy
from poscache.domain.models.common import CacheEntry, CacheKey, EvictionCandidate

logger = logging.getLogger(__name__)


class FastTierStore:
    """Bounded key -> CacheEntry map with policy-driven eviction."""

    def __init__(
        self,
        max_size: int,
        policy: EvictionPolicy,
        clock: Callable[[], float] = time.time,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self.policy = policy
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._entries)

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Returns the entry at ``key`` whether or not it is still live."""
        return self._entries.get(key)

    def put(
        self,
        key: CacheKey,
        value: Any,
        ttl_seconds: float,
        tags: Iterable[str] = (),
    ) -> Optional[CacheKey]:
        """Inserts or overwrites an entry.

        A new key arriving at a full store first evicts exactly one victim
        chosen by the policy. Overwrites never evict.

        Returns:
            The evicted key, if any.
        """
        with self._lock:
            now = self._clock()
            evicted: Optional[CacheKey] = None
            if key not in self._entries and len(self._entries) >= self.max_size:
                evicted = self.policy.select_victim(self._candidates())
                del self._entries[evicted]
            seq = next(self._seq)
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                ttl_seconds=ttl_seconds,
                access_count=1,
                last_accessed=now,
                write_seq=seq,
                use_seq=seq,
                tags=tuple(tags),
            )
        if evicted is not None:
            logger.debug(f"Fast tier EVICTED key ({self.policy.name}): {evicted}")
        return evicted

    def touch(self, key: CacheKey) -> bool:
        """Records a hit: bumps access_count and recency, leaves value and ttl alone."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.access_count += 1
            entry.last_accessed = self._clock()
            entry.use_seq = next(self._seq)
            return True

    def remove(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def remove_where(self, predicate: Callable[[CacheEntry], bool]) -> List[CacheKey]:
        """Removes every entry matching ``predicate`` and returns their keys."""
        with self._lock:
            doomed = [k for k, entry in self._entries.items() if predicate(entry)]
            for k in doomed:
                del self._entries[k]
            return doomed

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def _candidates(self) -> Iterable[EvictionCandidate]:
        return (
            EvictionCandidate(
                key=e.key,
                created_at=e.created_at,
                last_accessed=e.last_accessed,
                access_count=e.access_count,
                write_seq=e.write_seq,
                use_seq=e.use_seq,
            )
            for e in self._entries.values()
        )
