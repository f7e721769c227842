"""Concrete eviction policies for the Fast Tier.

LRU drops the least recently written-or-read entry, LFU the least read one
(oldest write first on ties) and FIFO the oldest write regardless of reads.
All comparisons fall back to sequence stamps so that entries written in the
same clock tick still have a deterministic order.
"""

import logging
from typing import Dict, Iterable, Union

from poscache.domain.exceptions import ConfigurationError
from poscache.domain.interfaces.eviction import EvictionPolicy
from poscache.domain.models.common import CacheKey, EvictionCandidate

logger = logging.getLogger(__name__)


def _pick(candidates: Iterable[EvictionCandidate], sort_key) -> CacheKey:
    victim = min(candidates, key=sort_key, default=None)
    if victim is None:
        raise ValueError("Cannot select an eviction victim from an empty cache")
    return victim.key


class LRUPolicy(EvictionPolicy):
    """Least recently used: every write and every hit refreshes recency."""

    name = "lru"

    def select_victim(self, candidates: Iterable[EvictionCandidate]) -> CacheKey:
        return _pick(candidates, lambda c: c.use_seq)


class LFUPolicy(EvictionPolicy):
    """Least frequently used; ties go to the earliest inserted entry."""

    name = "lfu"

    def select_victim(self, candidates: Iterable[EvictionCandidate]) -> CacheKey:
        return _pick(candidates, lambda c: (c.access_count, c.write_seq))


class FIFOPolicy(EvictionPolicy):
    """First in, first out by write time. Reads have no effect."""

    name = "fifo"

    def select_victim(self, candidates: Iterable[EvictionCandidate]) -> CacheKey:
        return _pick(candidates, lambda c: (c.created_at, c.write_seq))


_POLICIES: Dict[str, EvictionPolicy] = {
    LRUPolicy.name: LRUPolicy(),
    LFUPolicy.name: LFUPolicy(),
    FIFOPolicy.name: FIFOPolicy(),
}


def get_policy(policy: Union[str, EvictionPolicy]) -> EvictionPolicy:
    """Resolves a policy name ('lru', 'lfu', 'fifo') or passes an instance through.

    Raises:
        ConfigurationError: If the name is not a known policy.
    """
    if isinstance(policy, EvictionPolicy):
        return policy
    resolved = _POLICIES.get(str(policy).strip().lower())
    if resolved is None:
        raise ConfigurationError(
            f"Unknown eviction policy '{policy}'. Expected one of: {', '.join(sorted(_POLICIES))}"
        )
    logger.debug(f"Resolved eviction policy '{policy}' -> {resolved!r}")
    return resolved
