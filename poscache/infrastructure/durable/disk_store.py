"""Durable store on top of ``diskcache``.

diskcache is synchronous and may block on SQLite locks, so every call is
pushed to a worker thread to keep the event loop free.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

import diskcache as dc

from poscache.domain.exceptions import DurableStoreUnavailableError
from poscache.domain.interfaces.durable_store import DurableStore
from poscache.domain.models.common import CacheKey, CachePrefix

logger = logging.getLogger(__name__)

DEFAULT_DISK_TIMEOUT_SECONDS = 1


class DiskcacheDurableStore(DurableStore):
    """DurableStore persisted in a diskcache directory."""

    supports_prefix_scan = True

    def __init__(self, directory: Union[str, Path], timeout: float = DEFAULT_DISK_TIMEOUT_SECONDS):
        self.directory = Path(directory).expanduser()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._cache = dc.Cache(str(self.directory), timeout=timeout)
        except OSError as e:
            logger.error(f"Failed to open disk cache at {self.directory}: {e}")
            raise DurableStoreUnavailableError("open", str(self.directory), e) from e
        logger.info(f"Initialized disk durable store at: {self._cache.directory}")

    async def get(self, key: CacheKey) -> Optional[bytes]:
        try:
            value = await asyncio.to_thread(self._cache.get, key, None)
        except Exception as e:
            raise DurableStoreUnavailableError("get", key, e) from e
        if value is None:
            return None
        return bytes(value)

    async def put(self, key: CacheKey, payload: bytes, ttl_seconds: float) -> None:
        try:
            await asyncio.to_thread(self._cache.set, key, bytes(payload), ttl_seconds)
        except Exception as e:
            raise DurableStoreUnavailableError("put", key, e) from e

    async def delete(self, key: CacheKey) -> None:
        try:
            await asyncio.to_thread(self._cache.delete, key)
        except Exception as e:
            raise DurableStoreUnavailableError("delete", key, e) from e

    async def keys(self, prefix: CachePrefix = CachePrefix("")) -> List[CacheKey]:
        def _scan() -> List[CacheKey]:
            return [CacheKey(k) for k in self._cache.iterkeys() if isinstance(k, str) and k.startswith(prefix)]

        try:
            return await asyncio.to_thread(_scan)
        except Exception as e:
            raise DurableStoreUnavailableError("keys", prefix, e) from e

    async def purge_expired(self) -> int:
        """Drops expired records. Returns how many were removed."""
        try:
            removed = await asyncio.to_thread(self._cache.expire)
        except Exception as e:
            raise DurableStoreUnavailableError("purge_expired", "", e) from e
        logger.info(f"Purged {removed} expired record(s) from {self.directory}")
        return removed

    async def close(self) -> None:
        await asyncio.to_thread(self._cache.close)
        logger.debug(f"Closed disk durable store at {self.directory}")
