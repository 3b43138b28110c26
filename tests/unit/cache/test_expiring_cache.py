"""Unit tests for ExpiringCache."""

import asyncio

import pytest

from rankpilot.cache.expiring_cache import ExpiringCache


class TestExpiringCache:
    """Test ExpiringCache get/set/sweep semantics."""

    def test_cache_get_miss(self, clock):
        """Test cache miss returns None or the given default."""
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        assert cache.get("nonexistent") is None
        assert cache.get("nonexistent", "fallback") == "fallback"

    def test_set_then_get(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)

        cache.set("key1", "value1")
        cache.set(("seo tips", "en", 10), {"nested": "dict"})

        assert cache.get("key1") == "value1"
        assert cache.get(("seo tips", "en", 10)) == {"nested": "dict"}

    def test_expired_read_is_a_miss_and_evicts(self, clock):
        """A read after the TTL returns a miss and removes the entry."""
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        cache.set("expires", "value")
        cache.set("stays", "value", ttl_seconds=600)
        assert len(cache) == 2

        clock.advance(60)

        assert cache.get("expires") is None
        assert len(cache) == 1
        assert cache.get("stays") == "value"

    def test_entry_is_live_until_expiry(self, clock):
        cache = ExpiringCache(ttl_seconds=10, clock=clock)
        cache.set("k", "v")

        clock.advance(9.999)

        assert cache.get("k") == "v"

    def test_overwrite_returns_latest_value(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)

        cache.set("k", "v1")
        cache.set("k", "v2")

        assert cache.get("k") == "v2"

    def test_overwrite_refreshes_expiry(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v1")
        clock.advance(50)

        cache.set("k", "v2")
        clock.advance(50)

        assert cache.get("k") == "v2"

    def test_sweep_removes_only_expired(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3, ttl_seconds=300)

        clock.advance(120)
        removed = cache.sweep()

        assert removed == 2
        assert len(cache) == 1
        assert cache.get("c") == 3

    def test_sweep_on_empty_cache(self, clock):
        cache = ExpiringCache(clock=clock)
        assert cache.sweep() == 0

    def test_contains_does_not_evict(self, clock):
        cache = ExpiringCache(ttl_seconds=5, clock=clock)
        cache.set("k", "v")
        assert "k" in cache

        clock.advance(5)

        assert "k" not in cache
        assert len(cache) == 1

    def test_delete_and_clear(self, clock):
        cache = ExpiringCache(clock=clock)
        for i in range(5):
            cache.set(f"key{i}", i)

        cache.delete("key0")
        cache.delete("nonexistent")
        assert cache.get("key0") is None
        assert len(cache) == 4

        cache.clear()
        assert len(cache) == 0

    def test_stats_track_hits_misses_evictions(self, clock):
        cache = ExpiringCache(ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.get("a")
        cache.get("missing")
        clock.advance(10)
        cache.get("a")
        cache.sweep()

        assert cache.stats() == {"hits": 1, "misses": 2, "evictions": 2, "size": 0}


@pytest.mark.asyncio
class TestGetOrCompute:
    """Test single-flight computation."""

    async def test_miss_computes_and_stores(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            return "computed"

        first = await cache.get_or_compute("k", compute)
        second = await cache.get_or_compute("k", compute)

        assert first == ("computed", False)
        assert second == ("computed", True)
        assert calls == 1

    async def test_recomputes_after_expiry(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        values = iter(["first", "second"])

        async def compute():
            return next(values)

        await cache.get_or_compute("k", compute)
        clock.advance(61)

        assert await cache.get_or_compute("k", compute) == ("second", False)

    async def test_concurrent_callers_share_one_computation(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        release = asyncio.Event()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            await release.wait()
            return "shared"

        tasks = [asyncio.create_task(cache.get_or_compute("k", compute)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert sorted(hit for _, hit in results) == [False, True, True]
        assert all(value == "shared" for value, _ in results)

    async def test_failure_propagates_and_caches_nothing(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)

        async def boom():
            raise ValueError("llm failed")

        async def ok():
            return "recovered"

        with pytest.raises(ValueError, match="llm failed"):
            await cache.get_or_compute("k", boom)

        assert len(cache) == 0
        assert await cache.get_or_compute("k", ok) == ("recovered", False)

    async def test_failure_reaches_concurrent_waiters(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        release = asyncio.Event()

        async def boom():
            await release.wait()
            raise ValueError("llm failed")

        tasks = [asyncio.create_task(cache.get_or_compute("k", boom)) for _ in range(2)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, ValueError) for r in results)
        assert len(cache) == 0

    async def test_waiter_takes_over_when_leader_is_cancelled(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        release = asyncio.Event()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            await release.wait()
            return f"value-{calls}"

        leader = asyncio.create_task(cache.get_or_compute("k", compute))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(cache.get_or_compute("k", compute))
        await asyncio.sleep(0)

        leader.cancel()
        await asyncio.sleep(0)
        release.set()

        assert await waiter == ("value-2", False)
        assert leader.cancelled()
        assert calls == 2
        assert cache.get("k") == "value-2"

    async def test_cancelled_waiter_leaves_leader_running(self, clock):
        cache = ExpiringCache(ttl_seconds=60, clock=clock)
        release = asyncio.Event()

        async def compute():
            await release.wait()
            return "shared"

        leader = asyncio.create_task(cache.get_or_compute("k", compute))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(cache.get_or_compute("k", compute))
        await asyncio.sleep(0)

        waiter.cancel()
        await asyncio.sleep(0)
        release.set()

        assert await leader == ("shared", False)
        assert waiter.cancelled()
