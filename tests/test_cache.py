"""Tests for the in-memory TTL cache."""

from app.core.cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_get_returns_stored_value(self):
        cache = TTLCache(ttl_seconds=10)
        cache.set("a", {"x": 1})
        assert cache.get("a") == {"x": 1}

    def test_missing_key_returns_none(self):
        assert TTLCache().get("nope") is None

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("a", 1)

        clock.now = 9.9
        assert cache.get("a") == 1

        clock.now = 10.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_capacity_evicts_oldest(self):
        cache = TTLCache(ttl_seconds=100, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_capacity_prefers_purging_expired(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, max_entries=2, clock=clock)
        cache.set("old", 1)
        clock.now = 5
        cache.set("fresh", 2)
        clock.now = 12
        cache.set("new", 3)

        assert cache.get("fresh") == 2
        assert cache.get("new") == 3

    def test_overwrite_refreshes_expiry(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        clock.now = 8
        cache.set("a", 2)
        clock.now = 15
        assert cache.get("a") == 2

    def test_evict(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.evict("a")
        cache.evict("never-set")
        assert cache.get("a") is None

    def test_purge_expired_counts(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=1, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        clock.now = 2
        assert cache.purge_expired() == 2
        assert cache.stats()["size"] == 0
