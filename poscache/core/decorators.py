"""Decorators that memoize or invalidate through a CacheManager.

    @cached(cache, lambda product_id: CacheKeys.product(product_id), ttl_seconds=7200)
    async def load_product(product_id): ...

    @invalidates(cache, keys=lambda product_id, **_: [CacheKeys.product(product_id)],
                 prefixes=["products:"])
    async def update_product(product_id, **changes): ...
"""

import functools
import logging
from typing import Any, Callable, Iterable, Optional, Union

from poscache.core.cache_manager import CacheManager

logger = logging.getLogger(__name__)

KeysSpec = Union[Iterable[str], Callable[..., Iterable[str]], None]


def cached(
    cache: CacheManager,
    key_builder: Callable[..., str],
    ttl_seconds: Optional[float] = None,
    tags: Optional[Iterable[str]] = None,
    compress: bool = False,
) -> Callable:
    """Caches the result of an async function under ``key_builder(*args, **kwargs)``.

    Args:
        cache: The cache manager to store results in.
        key_builder: Builds the cache key from the call's arguments.
        ttl_seconds: TTL for stored results (cache default if None).
        tags: Tags attached to stored results.
        compress: Compress the durable copy of stored results.

    Returns:
        A decorator.
    """
    tag_list = list(tags or ())

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = key_builder(*args, **kwargs)
            return await cache.get_or_set(key, lambda: func(*args, **kwargs), ttl_seconds, tag_list, compress=compress)
        return wrapper
    return decorator


def _resolve(spec: KeysSpec, args: tuple, kwargs: dict) -> list:
    if spec is None:
        return []
    if callable(spec):
        return list(spec(*args, **kwargs))
    return list(spec)


def invalidates(
    cache: CacheManager,
    keys: KeysSpec = None,
    prefixes: KeysSpec = None,
    tags: KeysSpec = None,
) -> Callable:
    """Invalidates cache entries after the wrapped async function succeeds.

    Each of ``keys``, ``prefixes`` and ``tags`` is either a fixed list or a
    callable receiving the wrapped function's arguments. Nothing is
    invalidated if the function raises.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)
            for key in _resolve(keys, args, kwargs):
                await cache.delete(key)
            for prefix in _resolve(prefixes, args, kwargs):
                await cache.invalidate_prefix(prefix)
            tag_list = _resolve(tags, args, kwargs)
            if tag_list:
                cache.invalidate_tags(tag_list)
            logger.debug(f"{func.__name__} invalidated cache entries")
            return result
        return wrapper
    return decorator
