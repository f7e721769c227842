"""Cache counters with thread-safe increments."""

import threading
from typing import Dict

COUNTERS = (
    "hits",
    "misses",
    "fast_hits",
    "durable_hits",
    "sets",
    "deletes",
    "evictions",
    "expirations",
    "durable_errors",
    "deserialization_errors",
    "producer_calls",
    "coalesced_waits",
)


class StatsCollector:
    """Accumulates hit/miss and lifecycle counters for one cache instance."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = dict.fromkeys(COUNTERS, 0)

    def incr(self, counter: str, amount: int = 1) -> None:
        if counter not in self._counts:
            raise KeyError(f"Unknown cache counter: {counter}")
        with self._lock:
            self._counts[counter] += amount

    def get(self, counter: str) -> int:
        return self._counts[counter]

    @property
    def hit_rate(self) -> float:
        """Hits as a percentage of lookups, 0.0 before the first lookup."""
        with self._lock:
            total = self._counts["hits"] + self._counts["misses"]
            return round(self._counts["hits"] / total * 100, 2) if total else 0.0

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        with self._lock:
            for counter in self._counts:
                self._counts[counter] = 0
