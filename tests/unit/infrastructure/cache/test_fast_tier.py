import pytest

from poscache.infrastructure.cache.eviction_policies import FIFOPolicy, LFUPolicy, LRUPolicy
from poscache.infrastructure.cache.fast_tier import FastTierStore


@pytest.fixture
def lru_store(clock):
    return FastTierStore(max_size=3, policy=LRUPolicy(), clock=clock)


def test_put_then_get_returns_entry(lru_store: FastTierStore, clock):
    """A fresh entry records its write time, ttl and an access count of 1."""
    lru_store.put("a", {"sku": "A-1"}, ttl_seconds=60, tags=["products"])
    entry = lru_store.get("a")
    assert entry is not None
    assert entry.value == {"sku": "A-1"}
    assert entry.created_at == clock.now
    assert entry.ttl_seconds == 60
    assert entry.access_count == 1
    assert entry.tags == ("products",)


def test_get_ignores_liveness(lru_store: FastTierStore, clock):
    """The store hands back stale entries; expiry is the manager's call."""
    lru_store.put("a", 1, ttl_seconds=10)
    clock.advance(30)
    entry = lru_store.get("a")
    assert entry is not None
    assert not entry.is_live(clock.now)


def test_touch_increments_access_count_only(lru_store: FastTierStore, clock):
    lru_store.put("a", "v", ttl_seconds=60)
    created = lru_store.get("a").created_at
    clock.advance(5)
    assert lru_store.touch("a") is True
    entry = lru_store.get("a")
    assert entry.access_count == 2
    assert entry.value == "v"
    assert entry.ttl_seconds == 60
    assert entry.created_at == created
    assert entry.last_accessed == clock.now


def test_touch_missing_key_is_noop(lru_store: FastTierStore):
    assert lru_store.touch("nope") is False


def test_overwrite_resets_access_count_and_never_evicts(clock):
    store = FastTierStore(max_size=2, policy=LRUPolicy(), clock=clock)
    store.put("a", 1, 60)
    store.put("b", 2, 60)
    store.touch("a")
    store.touch("a")
    assert store.put("a", 10, 60) is None
    assert len(store) == 2
    assert store.get("a").access_count == 1
    assert store.get("a").value == 10


def test_insert_into_full_store_evicts_exactly_one(lru_store: FastTierStore):
    for key in ("a", "b", "c"):
        assert lru_store.put(key, key, 60) is None
    evicted = lru_store.put("d", "d", 60)
    assert evicted == "a"
    assert len(lru_store) == 3
    assert "a" not in lru_store
    assert set(lru_store.keys()) == {"b", "c", "d"}


@pytest.mark.parametrize("policy,expected", [
    (LRUPolicy(), "b"),   # a was touched after b was written
    (LFUPolicy(), "b"),   # a has the higher access count
    (FIFOPolicy(), "a"),  # oldest write regardless of reads
])
def test_victim_follows_policy(clock, policy, expected):
    store = FastTierStore(max_size=2, policy=policy, clock=clock)
    store.put("a", 1, 60)
    store.put("b", 2, 60)
    store.touch("a")
    assert store.put("c", 3, 60) == expected
    assert set(store.keys()) == {"a", "b", "c"} - {expected}


def test_remove_is_unconditional(lru_store: FastTierStore):
    lru_store.put("a", 1, 60)
    assert lru_store.remove("a") is True
    assert lru_store.remove("a") is False
    assert lru_store.get("a") is None


def test_remove_where_and_clear(lru_store: FastTierStore):
    lru_store.put("p:1", 1, 60)
    lru_store.put("p:2", 2, 60)
    lru_store.put("q:1", 3, 60)
    removed = lru_store.remove_where(lambda e: e.key.startswith("p:"))
    assert sorted(removed) == ["p:1", "p:2"]
    assert lru_store.keys() == ["q:1"]
    assert lru_store.clear() == 1
    assert len(lru_store) == 0


def test_max_size_must_be_positive():
    with pytest.raises(ValueError):
        FastTierStore(max_size=0, policy=LRUPolicy())
