"""Interface for the Durable Tier.

Defines the contract for the slower, shared key-value store that backs the
Fast Tier. Values cross this boundary as opaque bytes; encoding is the cache
manager's job.
"""

import abc
from typing import List, Optional

from ..models.common import CacheKey, CachePrefix


class DurableStore(abc.ABC):
    """Abstract Base Class for durable key-value stores."""

    # Whether keys() can enumerate stored keys by prefix.
    supports_prefix_scan: bool = False

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Optional[bytes]:
        """Retrieves the payload stored under a key.

        Args:
            key: The fully qualified cache key.

        Returns:
            The stored bytes, or None if absent or expired. A miss is never
            an error.

        Raises:
            DurableStoreUnavailableError: If the store cannot be reached.
        """
        pass

    @abc.abstractmethod
    async def put(self, key: CacheKey, payload: bytes, ttl_seconds: float) -> None:
        """Stores a payload with a time-to-live.

        Args:
            key: The fully qualified cache key.
            payload: Serialized envelope bytes.
            ttl_seconds: Seconds until the store may discard the payload.

        Raises:
            DurableStoreUnavailableError: If the write fails.
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes a key. Deleting an absent key is not an error.

        Raises:
            DurableStoreUnavailableError: If the delete fails.
        """
        pass

    async def keys(self, prefix: CachePrefix = CachePrefix("")) -> List[CacheKey]:
        """Lists stored keys starting with ``prefix``.

        Only available when ``supports_prefix_scan`` is True.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support prefix enumeration")

    async def close(self) -> None:
        """Releases connections or file handles. Default is a no-op."""
        return None
