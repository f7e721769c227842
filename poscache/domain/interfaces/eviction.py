"""Interface for Fast Tier eviction strategies."""

import abc
from typing import Iterable

from ..models.common import CacheKey, EvictionCandidate


class EvictionPolicy(abc.ABC):
    """Picks the entry to drop when the Fast Tier is full.

    Implementations are stateless: everything they need is on the candidate
    records, so one instance may serve any number of stores.
    """

    name: str = "custom"

    @abc.abstractmethod
    def select_victim(self, candidates: Iterable[EvictionCandidate]) -> CacheKey:
        """Returns the key of the entry to evict.

        Args:
            candidates: Every resident entry. Never empty when called by the
                Fast Tier.

        Raises:
            ValueError: If ``candidates`` is empty.
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
