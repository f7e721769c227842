"""Dict-backed durable store.

Stands in for a shared key-value service in development and tests. An
optional latency makes every call suspend, which lets concurrent cache
operations interleave the way they do against a real network store.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from poscache.domain.interfaces.durable_store import DurableStore
from poscache.domain.models.common import CacheKey, CachePrefix

logger = logging.getLogger(__name__)


class InMemoryDurableStore(DurableStore):
    """In-process DurableStore with per-key expiry."""

    supports_prefix_scan = True

    def __init__(self, latency_seconds: float = 0.0, clock: Callable[[], float] = time.time):
        self.latency_seconds = latency_seconds
        self._clock = clock
        self._data: Dict[str, Tuple[bytes, float]] = {}
        self.calls: Dict[str, int] = {"get": 0, "put": 0, "delete": 0, "keys": 0}

    async def _io(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        else:
            await asyncio.sleep(0)

    def _expired(self, key: str) -> bool:
        record = self._data.get(key)
        if record is not None and self._clock() >= record[1]:
            del self._data[key]
            return True
        return record is None

    async def get(self, key: CacheKey) -> Optional[bytes]:
        await self._io("get")
        if self._expired(key):
            return None
        return self._data[key][0]

    async def put(self, key: CacheKey, payload: bytes, ttl_seconds: float) -> None:
        await self._io("put")
        self._data[key] = (bytes(payload), self._clock() + ttl_seconds)

    async def delete(self, key: CacheKey) -> None:
        await self._io("delete")
        self._data.pop(key, None)

    async def keys(self, prefix: CachePrefix = CachePrefix("")) -> List[CacheKey]:
        await self._io("keys")
        return [CacheKey(k) for k in list(self._data) if k.startswith(prefix) and not self._expired(k)]

    def __len__(self) -> int:
        return len(self._data)
