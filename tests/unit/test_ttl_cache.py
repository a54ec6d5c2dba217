"""Unit tests for the TTL cache."""

import asyncio

import pytest

from docverify.cache.ttl_cache import TTLCache, run_periodic_sweep


class TestTTLCacheExpiry:
    """Entries are visible only while now < expires_at."""

    def test_fresh_entry_is_returned(self, clock):
        cache = TTLCache(60, clock=clock)
        cache.set("k", "v")
        clock.advance(59.9)
        assert cache.get("k") == "v"
        assert "k" in cache

    def test_entry_expires_at_exact_deadline(self, clock):
        cache = TTLCache(60, clock=clock)
        cache.set("k", "v")
        clock.advance(60)
        assert cache.get("k") is None
        assert len(cache) == 0  # dropped lazily on read

    def test_explicit_ttl_overrides_default(self, clock):
        cache = TTLCache(60, clock=clock)
        cache.set("short", "v", ttl_seconds=5)
        clock.advance(6)
        assert cache.get("short") is None

    def test_set_replaces_value_and_deadline(self, clock):
        cache = TTLCache(10, clock=clock)
        cache.set("k", "old")
        clock.advance(8)
        cache.set("k", "new")
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(0)


class TestTTLCacheMaintenance:
    def test_purge_expired_counts_removed(self, clock):
        cache = TTLCache(10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2, ttl_seconds=100)
        clock.advance(20)
        assert cache.purge_expired() == 1
        assert len(cache) == 1
        assert cache.get("b") == 2

    def test_delete_and_clear(self, clock):
        cache = TTLCache(10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        cache.delete("missing")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0

    async def test_periodic_sweep_runs_until_cancelled(self, clock):
        cache = TTLCache(1, clock=clock)
        cache.set("a", 1)
        clock.advance(5)

        task = asyncio.create_task(run_periodic_sweep(cache, 0.01))
        for _ in range(50):
            await asyncio.sleep(0.01)
            if len(cache) == 0:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(cache) == 0
