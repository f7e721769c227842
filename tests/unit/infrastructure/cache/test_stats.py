import pytest

from poscache.infrastructure.cache.stats import COUNTERS, StatsCollector


def test_counters_start_at_zero():
    stats = StatsCollector()
    assert stats.snapshot() == dict.fromkeys(COUNTERS, 0)
    assert stats.hit_rate == 0.0


def test_hit_rate_is_a_percentage():
    stats = StatsCollector()
    stats.incr("hits", 2)
    stats.incr("misses")
    assert stats.hit_rate == 66.67
    stats.reset()
    assert stats.get("hits") == 0


def test_unknown_counter_is_rejected():
    with pytest.raises(KeyError):
        StatsCollector().incr("bogus")
