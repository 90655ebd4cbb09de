"""Test the TTL cache."""

from icp_builder.cache import TTLCache


class TestTTLCache:
    """Test suite for TTLCache."""

    def test_set_then_get_returns_value(self, cache):
        cache.set("company:acme.com", {"name": "Acme"})
        assert cache.get("company:acme.com") == {"name": "Acme"}

    def test_missing_key_returns_none(self, cache):
        assert cache.get("company:unknown.com") is None

    def test_delete_removes_entry(self, cache):
        cache.set("k", 1)
        cache.delete("k")
        assert cache.get("k") is None
        # deleting twice is harmless
        cache.delete("k")

    def test_clear_removes_everything(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_entry_alive_at_ttl_boundary(self, cache, clock):
        cache.set("k", "v")
        clock.advance(300)
        assert cache.get("k") == "v"

    def test_expired_entry_is_removed_on_read(self, cache, clock):
        cache.set("k", "v")
        clock.advance(301)
        assert "k" not in cache
        assert len(cache) == 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_set_refreshes_insertion_time(self, cache, clock):
        cache.set("k", "old")
        clock.advance(200)
        cache.set("k", "new")
        clock.advance(200)
        assert cache.get("k") == "new"

    def test_stats_count_hits_and_misses(self, clock):
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("k", "v")
        cache.get("k")
        cache.get("k")
        cache.get("other")

        stats = cache.stats()
        assert stats == {"entries": 1, "hits": 2, "misses": 1, "ttl_seconds": 10}
