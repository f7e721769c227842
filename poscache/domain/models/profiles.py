"""Predefined cache profiles for common SmartPOS data classes.

A profile bundles a TTL, a key namespace and invalidation tags so that call
sites cache the same kind of data the same way:

    await cache.set(CacheProfiles.PRODUCTS.key("product:42"), product,
                    **CacheProfiles.PRODUCTS.options())
    await cache.invalidate_prefix(CacheProfiles.PRODUCTS.prefix)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class CacheProfile:
    """TTL, namespace and tags shared by one family of cached values."""
    name: str
    ttl_seconds: int
    namespace: str
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def prefix(self) -> str:
        return f"{self.namespace}:"

    def key(self, key: str) -> str:
        """Qualifies a key with this profile's namespace."""
        return f"{self.prefix}{key}"

    def options(self) -> Dict[str, Any]:
        """Keyword arguments for ``set`` / ``get_or_set``."""
        return {"ttl_seconds": self.ttl_seconds, "tags": list(self.tags)}


class CacheProfiles:
    # Short-term cache for frequently accessed data
    SHORT = CacheProfile("short", ttl_seconds=300, namespace="short")
    # Medium-term cache for semi-static data
    MEDIUM = CacheProfile("medium", ttl_seconds=3600, namespace="medium")
    # Long-term cache for static data
    LONG = CacheProfile("long", ttl_seconds=86400, namespace="long")
    SESSION = CacheProfile("session", ttl_seconds=1800, namespace="session")
    PRODUCTS = CacheProfile("products", ttl_seconds=7200, namespace="products", tags=("products",))
    REPORTS = CacheProfile("reports", ttl_seconds=1800, namespace="reports", tags=("reports",))
    SETTINGS = CacheProfile("settings", ttl_seconds=3600, namespace="settings", tags=("settings",))

    @classmethod
    def all(cls) -> Tuple[CacheProfile, ...]:
        return (cls.SHORT, cls.MEDIUM, cls.LONG, cls.SESSION, cls.PRODUCTS, cls.REPORTS, cls.SETTINGS)

    @classmethod
    def by_name(cls, name: str) -> CacheProfile:
        for profile in cls.all():
            if profile.name == name.lower():
                return profile
        raise KeyError(f"Unknown cache profile: {name}")
