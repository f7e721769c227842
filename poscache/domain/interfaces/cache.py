"""Interface for the tiered cache.

Defines the public contract application code programs against: lookups
that read through to the Durable Tier, write-through stores, memoization,
bulk invalidation and introspection.
"""

import abc
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from ..models.common import CacheKey, CachePrefix, CacheStats

Producer = Callable[[], Union[Any, Awaitable[Any]]]


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey, default: Any = None) -> Any:
        """Retrieves an item, checking the Fast Tier then the Durable Tier.

        Args:
            key: The cache key to retrieve.
            default: Returned on a miss.

        Returns:
            The cached item if found and live, otherwise ``default``.
        """
        pass

    @abc.abstractmethod
    async def set(
        self,
        key: CacheKey,
        value: Any,
        ttl_seconds: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        compress: bool = False,
    ) -> None:
        """Stores an item in the Fast Tier and writes it through to the Durable Tier.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl_seconds: Time-to-live in seconds (uses the cache default if None).
            tags: Optional labels for ``invalidate_tags``.
            compress: zlib-compress the durable payload.
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes an item from both tiers."""
        pass

    @abc.abstractmethod
    async def get_or_set(
        self,
        key: CacheKey,
        producer: Producer,
        ttl_seconds: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        compress: bool = False,
    ) -> Any:
        """Returns the cached item, or computes, stores and returns it.

        Args:
            key: The cache key.
            producer: Zero-argument callable (sync or async) computing the value.
            ttl_seconds: Time-to-live for a freshly produced value.
            tags: Optional labels for a freshly produced value.
            compress: zlib-compress the durable payload of a freshly produced value.
        """
        pass

    @abc.abstractmethod
    async def invalidate_prefix(self, prefix: CachePrefix, include_durable: bool = False) -> int:
        """Removes every Fast Tier entry whose key starts with ``prefix``.

        Args:
            prefix: Key prefix to match.
            include_durable: Also delete matching Durable Tier keys when the
                store can enumerate them.

        Returns:
            Number of Fast Tier entries removed.
        """
        pass

    @abc.abstractmethod
    def stats(self) -> CacheStats:
        """Returns a read-only snapshot of cache counters."""
        pass
