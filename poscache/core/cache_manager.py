"""Tiered cache manager.

Orchestrates the Fast Tier (in-process, bounded) and an optional Durable
Tier (shared, slower): read-through on a Fast Tier miss, write-through on
set, single-flight memoization, prefix/tag invalidation and stats.

The manager is an explicitly owned object. Build one at startup, hand it to
whoever needs it, and close it on shutdown:

    async with CacheManager(max_size=5000, eviction_policy="lfu",
                            durable_store=DiskcacheDurableStore(path)) as cache:
        product = await cache.get_or_set(CacheKeys.product(42), load_product)

Durable Tier failures never reach callers of get/set/delete/get_or_set; the
cache degrades to Fast-Tier-only operation and logs the problem.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from poscache.core.single_flight import SingleFlight
from poscache.domain.events.cache_events import (
    CacheEvent,
    DurableStoreFailed,
    EntryEvicted,
    EntryExpired,
    PayloadRejected,
    ProducerInvoked,
)
from poscache.domain.exceptions import CacheClosedError, SerializationError
from poscache.domain.interfaces.cache import CacheService, Producer
from poscache.domain.interfaces.durable_store import DurableStore
from poscache.domain.interfaces.eviction import EvictionPolicy
from poscache.domain.models.common import CacheKey, CachePrefix, CacheStats
from poscache.infrastructure.cache.eviction_policies import get_policy
from poscache.infrastructure.cache.fast_tier import FastTierStore
from poscache.infrastructure.cache.serializer import Envelope, PayloadCodec, Serializer
from poscache.infrastructure.cache.stats import StatsCollector
from poscache.infrastructure.resilience.write_retry import DurableWriteRetry, MaxRetryError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 3600  # 1 hour

_MISSING = object()


class CacheManager(CacheService):
    """Two-tier cache: bounded Fast Tier in front of an optional DurableStore."""

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        eviction_policy: Union[str, EvictionPolicy] = "lru",
        durable_store: Optional[DurableStore] = None,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        namespace: Optional[str] = None,
        serializer: Union[str, Serializer, None] = None,
        clock: Callable[[], float] = time.time,
        write_retry: Optional[DurableWriteRetry] = None,
        event_listener: Optional[Callable[[CacheEvent], None]] = None,
    ):
        """Initializes the cache manager.

        Args:
            max_size: Maximum number of Fast Tier entries.
            eviction_policy: 'lru', 'lfu', 'fifo' or an EvictionPolicy instance.
            durable_store: Durable Tier adapter; None runs Fast-Tier-only.
            default_ttl_seconds: TTL used when a call does not pass one.
            namespace: Optional key namespace applied to both tiers.
            serializer: 'pickle' (default), 'json' or a serializer instance.
            clock: Wall-clock source in seconds; injectable for tests.
            write_retry: Retry policy for durable writes (single attempt by default).
            event_listener: Optional callable receiving CacheEvent objects.

        Raises:
            ValueError: If max_size < 1 or default_ttl_seconds <= 0.
            ConfigurationError: If the policy or serializer name is unknown.
        """
        if default_ttl_seconds <= 0:
            raise ValueError(f"default_ttl_seconds must be positive, got {default_ttl_seconds}")
        self._policy = get_policy(eviction_policy)
        self._clock = clock
        self._fast = FastTierStore(max_size, self._policy, clock=clock)
        self._durable = durable_store
        self._codec = PayloadCodec(serializer)
        self._retry = write_retry or DurableWriteRetry()
        self._stats = StatsCollector()
        self._flights = SingleFlight()
        self._event_listener = event_listener
        self.default_ttl_seconds = default_ttl_seconds
        self.namespace = namespace or None
        self._closed = False
        # Bumped by every removal; a read-through that straddles one must not backfill
        self._invalidation_epoch = 0

        logger.info(
            f"CacheManager initialized. Fast tier(max={max_size}, policy={self._policy.name}, "
            f"ttl={default_ttl_seconds}s), durable={type(durable_store).__name__ if durable_store else 'None'}, "
            f"namespace={self.namespace or '-'}"
        )

    @classmethod
    def from_settings(cls, settings: Any, durable_store: Optional[DurableStore] = None, **overrides: Any) -> "CacheManager":
        """Builds a manager from a CacheSettings instance."""
        options: Dict[str, Any] = dict(
            max_size=settings.max_size,
            eviction_policy=settings.eviction_policy,
            durable_store=durable_store,
            default_ttl_seconds=settings.default_ttl_seconds,
            namespace=settings.namespace,
            serializer=settings.serializer,
            write_retry=DurableWriteRetry(
                max_retries=settings.write_retries,
                initial_backoff_s=settings.retry_initial_backoff_seconds,
                backoff_factor=settings.retry_backoff_factor,
            ),
        )
        options.update(overrides)
        return cls(**options)

    # --- Lifecycle ---

    async def __aenter__(self) -> "CacheManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def policy(self) -> EvictionPolicy:
        return self._policy

    @property
    def durable_store(self) -> Optional[DurableStore]:
        return self._durable

    async def close(self) -> None:
        """Drops the Fast Tier and closes the durable adapter. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        dropped = self._fast.clear()
        if self._durable is not None:
            try:
                await self._durable.close()
            except Exception as e:
                logger.warning(f"Error closing durable store {type(self._durable).__name__}: {e}", exc_info=True)
        logger.info(f"CacheManager closed. Dropped {dropped} fast tier entr{'y' if dropped == 1 else 'ies'}.")

    def _check_open(self) -> None:
        if self._closed:
            raise CacheClosedError("Cache manager has been closed")

    # --- Keys & helpers ---

    def _qualify(self, key: str) -> CacheKey:
        return CacheKey(f"{self.namespace}:{key}" if self.namespace else key)

    def _unqualify(self, full_key: str) -> str:
        if self.namespace and full_key.startswith(f"{self.namespace}:"):
            return full_key[len(self.namespace) + 1:]
        return full_key

    def _resolve_ttl(self, ttl_seconds: Optional[float]) -> float:
        if ttl_seconds is None:
            return self.default_ttl_seconds
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        return ttl_seconds

    def _dispatch(self, event: CacheEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_listener is None:
            return
        try:
            self._event_listener(event)
        except Exception as e:
            logger.warning(f"Cache event listener failed on {type(event).__name__}: {e}", exc_info=True)

    def _durable_failed(self, operation: str, full_key: str, error: Exception) -> None:
        cause = error.original_exception if isinstance(error, MaxRetryError) else error
        self._stats.incr("durable_errors")
        logger.warning(
            f"Durable store {operation} failed for key {full_key}: {type(cause).__name__}: {cause}. "
            f"Continuing with fast tier only."
        )
        self._dispatch(DurableStoreFailed(
            operation=operation,
            key=self._unqualify(full_key),
            error_type=type(cause).__name__,
            error_message=str(cause),
        ))

    # --- Fast Tier ---

    def _lookup_fast(self, full_key: CacheKey) -> Any:
        """Returns the live Fast Tier value (touching it) or _MISSING; drops a stale entry."""
        entry = self._fast.get(full_key)
        if entry is None:
            return _MISSING
        if not entry.is_live(self._clock()):
            if self._fast.remove(full_key):
                self._stats.incr("expirations")
                logger.debug(f"Fast tier EXPIRED key: {full_key}")
                self._dispatch(EntryExpired(key=self._unqualify(full_key)))
            return _MISSING
        self._fast.touch(full_key)
        return entry.value

    def _store_fast(self, full_key: CacheKey, value: Any, ttl_seconds: float, tags: Tuple[str, ...]) -> None:
        evicted = self._fast.put(full_key, value, ttl_seconds, tags)
        if evicted is not None:
            self._stats.incr("evictions")
            self._dispatch(EntryEvicted(key=self._unqualify(evicted), policy=self._policy.name))

    # --- Durable Tier ---

    async def _read_through(self, full_key: CacheKey) -> Any:
        if self._durable is None:
            return _MISSING
        epoch = self._invalidation_epoch
        try:
            payload = await self._durable.get(full_key)
        except Exception as e:
            self._durable_failed("get", full_key, e)
            return _MISSING
        if payload is None:
            return _MISSING

        try:
            envelope = self._codec.decode(payload)
        except SerializationError as e:
            self._stats.incr("deserialization_errors")
            logger.warning(f"Rejected durable payload for key {full_key}: {e}. Treating as a miss.")
            self._dispatch(PayloadRejected(key=self._unqualify(full_key), reason=str(e)))
            return _MISSING

        now = self._clock()
        if not envelope.is_live(now):
            logger.debug(f"Durable copy of key {full_key} is expired. Removing.")
            await self._durable_delete(full_key)
            return _MISSING

        # A set() may have landed while we were suspended on the durable read
        current = self._fast.get(full_key)
        if current is not None and current.is_live(now):
            return current.value

        if epoch != self._invalidation_epoch:
            logger.debug(f"Invalidation landed during durable read of {full_key}; not backfilling.")
            return envelope.value

        self._store_fast(full_key, envelope.value, envelope.remaining_ttl(now), envelope.tags)
        logger.debug(f"Durable tier HIT, backfilled key: {full_key}")
        return envelope.value

    async def _write_through(self, full_key: CacheKey, envelope: Envelope) -> None:
        if self._durable is None:
            return
        try:
            payload = self._codec.encode(envelope)
        except SerializationError as e:
            self._stats.incr("durable_errors")
            logger.warning(f"Cannot serialize value for key {full_key}: {e}. Stored in fast tier only.")
            return
        try:
            await self._retry.execute(self._durable.put, full_key, payload, envelope.ttl_seconds, operation="put")
        except Exception as e:
            self._durable_failed("put", full_key, e)

    async def _durable_delete(self, full_key: CacheKey) -> None:
        if self._durable is None:
            return
        try:
            await self._durable.delete(full_key)
        except Exception as e:
            self._durable_failed("delete", full_key, e)

    # --- CacheService Interface Implementation ---

    async def _get(self, key: str) -> Any:
        self._check_open()
        full_key = self._qualify(key)

        value = self._lookup_fast(full_key)
        if value is not _MISSING:
            self._stats.incr("hits")
            self._stats.incr("fast_hits")
            logger.debug(f"Fast tier HIT for key: {full_key}")
            return value

        value = await self._read_through(full_key)
        if value is not _MISSING:
            self._stats.incr("hits")
            self._stats.incr("durable_hits")
            return value

        self._stats.incr("misses")
        logger.debug(f"Cache MISS for key: {full_key}")
        return _MISSING

    async def get(self, key: CacheKey, default: Any = None) -> Any:
        """Retrieves a value: Fast Tier, then Durable Tier read-through.

        Returns ``default`` on a miss; never raises for a miss or a durable
        store failure.
        """
        value = await self._get(key)
        return default if value is _MISSING else value

    async def set(
        self,
        key: CacheKey,
        value: Any,
        ttl_seconds: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        compress: bool = False,
    ) -> None:
        """Stores a value in the Fast Tier and writes it through to the Durable Tier.

        A durable failure is logged and counted; the Fast Tier write stands.
        With ``compress`` the durable payload is zlib-compressed; the Fast
        Tier always holds the plain value.

        Raises:
            ValueError: If ttl_seconds is not positive.
        """
        self._check_open()
        ttl = self._resolve_ttl(ttl_seconds)
        tag_tuple = tuple(tags or ())
        full_key = self._qualify(key)
        now = self._clock()

        self._store_fast(full_key, value, ttl, tag_tuple)
        self._stats.incr("sets")
        logger.debug(f"Stored key in fast tier: {full_key} (ttl={ttl}s)")
        await self._write_through(
            full_key,
            Envelope(value=value, created_at=now, ttl_seconds=ttl, tags=tag_tuple, compressed=compress),
        )

    def _invalidated(self) -> None:
        self._invalidation_epoch += 1

    async def delete(self, key: CacheKey) -> None:
        """Removes a key from both tiers."""
        self._check_open()
        full_key = self._qualify(key)
        self._invalidated()
        self._fast.remove(full_key)
        self._stats.incr("deletes")
        logger.debug(f"Deleted key: {full_key}")
        await self._durable_delete(full_key)

    async def get_or_set(
        self,
        key: CacheKey,
        producer: Producer,
        ttl_seconds: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        compress: bool = False,
    ) -> Any:
        """Returns the cached value or produces, stores and returns a fresh one.

        Concurrent callers for the same cold key share one producer run. A
        producer exception propagates to every caller sharing that run and
        nothing is cached.
        """
        ttl = self._resolve_ttl(ttl_seconds)
        value = await self._get(key)
        if value is not _MISSING:
            return value

        full_key = self._qualify(key)
        result, shared = await self._flights.do(
            full_key, lambda: self._produce(key, full_key, producer, ttl, tags, compress)
        )
        if shared:
            self._stats.incr("coalesced_waits")
        return result

    async def _produce(
        self,
        key: CacheKey,
        full_key: CacheKey,
        producer: Producer,
        ttl_seconds: float,
        tags: Optional[Iterable[str]],
        compress: bool,
    ) -> Any:
        # An earlier flight may have filled the key after our miss
        value = self._lookup_fast(full_key)
        if value is not _MISSING:
            return value

        self._stats.incr("producer_calls")
        start_time = time.perf_counter()
        try:
            result = producer()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(f"Producer for key {full_key} failed after {latency_ms:.1f}ms: {e}")
            self._dispatch(ProducerInvoked(
                key=key, latency_ms=latency_ms, waiters=self._flights.waiters(full_key), error=str(e)
            ))
            raise
        latency_ms = (time.perf_counter() - start_time) * 1000

        await self.set(key, result, ttl_seconds, tags, compress=compress)
        self._dispatch(ProducerInvoked(key=key, latency_ms=latency_ms, waiters=self._flights.waiters(full_key)))
        return result

    async def invalidate_prefix(self, prefix: CachePrefix, include_durable: bool = False) -> int:
        """Removes Fast Tier entries whose key starts with ``prefix``.

        The Durable Tier is only touched when ``include_durable`` is set and
        the store can enumerate keys by prefix.

        Returns:
            Number of Fast Tier entries removed.
        """
        self._check_open()
        full_prefix = self._qualify(prefix)
        self._invalidated()
        removed = self._fast.remove_where(lambda entry: entry.key.startswith(full_prefix))
        logger.info(f"Invalidated {len(removed)} fast tier entr{'y' if len(removed) == 1 else 'ies'} with prefix '{full_prefix}'")
        if include_durable:
            await self._invalidate_durable_prefix(full_prefix)
        return len(removed)

    async def _invalidate_durable_prefix(self, full_prefix: CacheKey) -> None:
        if self._durable is None:
            return
        if not self._durable.supports_prefix_scan:
            logger.warning(
                f"{type(self._durable).__name__} cannot enumerate keys; durable copies under "
                f"'{full_prefix}' will expire on their own."
            )
            return
        try:
            keys = await self._durable.keys(CachePrefix(full_prefix))
        except Exception as e:
            self._durable_failed("keys", full_prefix, e)
            return
        await asyncio.gather(*(self._durable_delete(k) for k in keys))
        logger.info(f"Deleted {len(keys)} durable key(s) with prefix '{full_prefix}'")

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Removes Fast Tier entries carrying any of ``tags``. The Durable Tier is not touched."""
        self._check_open()
        wanted = frozenset(tags)
        self._invalidated()
        removed = self._fast.remove_where(lambda entry: not wanted.isdisjoint(entry.tags))
        logger.info(f"Invalidated {len(removed)} fast tier entries tagged {sorted(wanted)}")
        return len(removed)

    async def get_many(self, keys: Iterable[CacheKey]) -> Dict[CacheKey, Any]:
        """Looks up several keys concurrently. Misses map to None."""
        key_list: List[CacheKey] = list(keys)
        values = await asyncio.gather(*(self.get(k) for k in key_list))
        return dict(zip(key_list, values))

    async def set_many(
        self,
        items: Mapping[CacheKey, Any],
        ttl_seconds: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        compress: bool = False,
    ) -> None:
        """Stores several values concurrently with a shared ttl and tags."""
        tag_list = list(tags or ())
        await asyncio.gather(
            *(self.set(k, v, ttl_seconds, tag_list, compress=compress) for k, v in items.items())
        )

    # --- Maintenance & introspection ---

    def sweep_expired(self) -> int:
        """Removes every expired Fast Tier entry.

        Intended for an external periodic scheduler. After close() this is a
        no-op so that a sweep racing shutdown cannot fail.
        """
        if self._closed:
            logger.warning("sweep_expired() called on a closed cache manager; ignoring.")
            return 0
        now = self._clock()
        removed = self._fast.remove_where(lambda entry: not entry.is_live(now))
        if removed:
            self._stats.incr("expirations", len(removed))
            for full_key in removed:
                self._dispatch(EntryExpired(key=self._unqualify(full_key)))
            logger.info(f"Sweep removed {len(removed)} expired fast tier entries")
        return len(removed)

    def clear(self) -> int:
        """Drops every Fast Tier entry. The Durable Tier is not touched."""
        self._check_open()
        self._invalidated()
        count = self._fast.clear()
        logger.info(f"Cleared fast tier ({count} entries)")
        return count

    def stats(self) -> CacheStats:
        counts = self._stats.snapshot()
        return CacheStats(
            entry_count=len(self._fast),
            max_size=self._fast.max_size,
            policy=self._policy.name,
            hit_rate=self._stats.hit_rate,
            **counts,
        )

    def reset_stats(self) -> None:
        self._stats.reset()

    def __len__(self) -> int:
        return len(self._fast)

    def __contains__(self, key: object) -> bool:
        """Fast Tier residency (live or not yet swept). Does not count as an access."""
        return isinstance(key, str) and self._qualify(key) in self._fast
