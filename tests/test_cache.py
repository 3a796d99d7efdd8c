"""
Tests for the TTL result cache.
"""

import pytest

from supplytrace.services.caching import MISS, ResultCache, invalidates_cache


class TestResultCache:
    """Expiry, invalidation and statistics."""

    def test_miss_then_hit(self, cache):
        assert cache.get("products") is MISS
        cache.put("products", ("a",))
        assert cache.get("products") == ("a",)

        stats = cache.get_stats()
        assert stats.misses == 1
        assert stats.hits == 1
        assert stats.sets == 1

    def test_empty_values_are_cached(self, cache):
        cache.put("events", ())
        assert cache.get("events") == ()
        assert cache.get("events") is not MISS

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.put("products", ("a",))
        clock.advance(299)
        assert cache.get("products") == ("a",)
        clock.advance(1)
        assert cache.get("products") is MISS
        assert cache.get_stats().expired == 1

    def test_per_entry_ttl(self, cache, clock):
        cache.put("short", 1, ttl=10)
        clock.advance(11)
        assert cache.get("short") is MISS

    def test_invalidate_all(self, cache):
        cache.put("products", 1)
        cache.put("events", 2)
        assert cache.invalidate_all() == 2
        assert cache.get("products") is MISS
        assert cache.get("events") is MISS
        assert cache.get_stats().size == 0

    def test_get_or_set_calls_factory_once(self, cache):
        calls = []

        def factory():
            calls.append(1)
            return "value"

        assert cache.get_or_set("key", factory) == "value"
        assert cache.get_or_set("key", factory) == "value"
        assert len(calls) == 1

    def test_stats_to_dict(self, cache):
        cache.get("missing")
        cache.put("k", 1)
        cache.get("k")
        assert cache.get_stats().to_dict()["hit_rate"] == 0.5

    def test_default_ttl(self):
        assert ResultCache().default_ttl == 300


class TestInvalidationDecorator:
    """invalidates_cache on mutating methods."""

    class Service:
        def __init__(self, cache):
            self.cache = cache

        @invalidates_cache
        def mutate(self, fail=False):
            if fail:
                raise RuntimeError("boom")
            return "done"

    def test_invalidates_after_success(self, cache):
        cache.put("products", 1)
        assert self.Service(cache).mutate() == "done"
        assert cache.get("products") is MISS

    def test_keeps_entries_on_failure(self, cache):
        cache.put("products", 1)
        with pytest.raises(RuntimeError):
            self.Service(cache).mutate(fail=True)
        assert cache.get("products") == 1
