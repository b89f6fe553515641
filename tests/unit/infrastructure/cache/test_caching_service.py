import asyncio

import pytest

from routewise.domain.interfaces.cache import CacheStats
from routewise.domain.models.common import CacheKey
from routewise.infrastructure.cache.caching_service import CacheConfig, InMemoryCache


@pytest.fixture
def cache(clock):
    """Small cache driven by a fake clock."""
    return InMemoryCache(CacheConfig(default_ttl_ms=1000, max_entries=3), clock=clock)


@pytest.mark.asyncio
async def test_set_then_get(cache: InMemoryCache):
    await cache.set(CacheKey("a"), {"value": 1})
    assert await cache.get(CacheKey("a")) == {"value": 1}
    stats = await cache.get_stats()
    assert stats.hit_count == 1 and stats.miss_count == 0


@pytest.mark.asyncio
async def test_missing_key_counts_miss(cache: InMemoryCache):
    assert await cache.get(CacheKey("missing")) is None
    assert (await cache.get_stats()).miss_count == 1


@pytest.mark.asyncio
async def test_expired_entry_is_removed_and_counted(cache: InMemoryCache, clock):
    """get after expiry returns absent and increments expired_count by one."""
    await cache.set(CacheKey("a"), "value", ttl_ms=100)
    clock.advance_ms(100)
    assert await cache.get(CacheKey("a")) == "value"  # expiry is strictly after expires_at
    clock.advance_ms(50)
    assert await cache.get(CacheKey("a")) is None
    stats = await cache.get_stats()
    assert stats.expired_count == 1
    assert stats.miss_count == 1
    assert stats.size == 0


@pytest.mark.asyncio
async def test_ttl_with_real_clock():
    cache = InMemoryCache(CacheConfig(default_ttl_ms=100))
    await cache.set(CacheKey("k"), "v")
    assert await cache.get(CacheKey("k")) == "v"
    await asyncio.sleep(0.15)
    assert await cache.get(CacheKey("k")) is None
    assert (await cache.get_stats()).expired_count == 1
    cache.shutdown()


@pytest.mark.asyncio
async def test_evicts_earliest_created_entry(cache: InMemoryCache, clock):
    """Inserting max_entries + 1 keys evicts exactly the oldest one."""
    for key in ("a", "b", "c"):
        await cache.set(CacheKey(key), key)
        clock.advance_ms(1)
    # Reading "a" does not protect it: eviction is oldest-first, not LRU.
    assert await cache.get(CacheKey("a")) == "a"
    await cache.set(CacheKey("d"), "d")
    assert await cache.has(CacheKey("a")) is False
    for key in ("b", "c", "d"):
        assert await cache.get(CacheKey(key)) == key
    assert cache.size == 3


@pytest.mark.asyncio
async def test_overwrite_at_capacity_does_not_evict(cache: InMemoryCache, clock):
    for key in ("a", "b", "c"):
        await cache.set(CacheKey(key), key)
        clock.advance_ms(1)
    await cache.set(CacheKey("a"), "A")
    assert cache.keys() == ["b", "c", "a"]
    await cache.set(CacheKey("d"), "d")
    assert cache.keys() == ["c", "a", "d"]


@pytest.mark.asyncio
async def test_has_counts_only_expiry(cache: InMemoryCache, clock):
    await cache.set(CacheKey("a"), 1, ttl_ms=10)
    assert await cache.has(CacheKey("a")) is True
    assert await cache.has(CacheKey("zzz")) is False
    clock.advance_ms(11)
    assert await cache.has(CacheKey("a")) is False
    stats = await cache.get_stats()
    assert (stats.hit_count, stats.miss_count, stats.expired_count) == (0, 0, 1)


@pytest.mark.asyncio
async def test_delete(cache: InMemoryCache):
    await cache.set(CacheKey("a"), 1)
    await cache.delete(CacheKey("a"))
    await cache.delete(CacheKey("never-set"))
    assert await cache.get(CacheKey("a")) is None


@pytest.mark.asyncio
async def test_clear_resets_store_and_counters(cache: InMemoryCache):
    await cache.set(CacheKey("a"), 1)
    await cache.get(CacheKey("a"))
    await cache.get(CacheKey("b"))
    await cache.clear()
    assert await cache.get_stats() == CacheStats(size=0, hit_count=0, miss_count=0, hit_rate=0.0, expired_count=0)


@pytest.mark.asyncio
async def test_hit_rate(cache: InMemoryCache):
    await cache.set(CacheKey("a"), 1)
    await cache.get(CacheKey("a"))
    await cache.get(CacheKey("a"))
    await cache.get(CacheKey("a"))
    await cache.get(CacheKey("b"))
    assert (await cache.get_stats()).hit_rate == 0.75


@pytest.mark.asyncio
async def test_stats_disabled(clock):
    cache = InMemoryCache(CacheConfig(enable_stats=False), clock=clock)
    await cache.set(CacheKey("a"), 1, ttl_ms=5)
    await cache.get(CacheKey("a"))
    await cache.get(CacheKey("b"))
    clock.advance_ms(10)
    await cache.get(CacheKey("a"))
    stats = await cache.get_stats()
    assert (stats.hit_count, stats.miss_count, stats.expired_count) == (0, 0, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl_ms", [0, -5])
async def test_non_positive_ttl_rejected(cache: InMemoryCache, ttl_ms):
    with pytest.raises(ValueError):
        await cache.set(CacheKey("a"), 1, ttl_ms=ttl_ms)
    assert cache.size == 0


@pytest.mark.asyncio
async def test_cleanup_expired_sweeps_unread_entries(cache: InMemoryCache, clock):
    await cache.set(CacheKey("short"), 1, ttl_ms=10)
    await cache.set(CacheKey("long"), 2, ttl_ms=10_000)
    clock.advance_ms(20)
    assert cache.cleanup_expired() == 1
    assert cache.keys() == ["long"]
    assert (await cache.get_stats()).expired_count == 1


@pytest.mark.asyncio
async def test_background_sweep_runs_periodically():
    cache = InMemoryCache(CacheConfig(default_ttl_ms=10), cleanup_interval_ms=20)
    await cache.set(CacheKey("a"), 1)
    await asyncio.sleep(0.1)
    assert cache.size == 0
    assert (await cache.get_stats()).expired_count == 1
    cache.shutdown()


@pytest.mark.asyncio
async def test_shutdown_stops_sweep_and_empties_store(cache: InMemoryCache):
    await cache.set(CacheKey("a"), 1)
    task = cache._sweep_task
    assert task is not None
    cache.shutdown()
    await asyncio.sleep(0.01)
    assert task.cancelled()
    assert cache.size == 0


@pytest.mark.asyncio
async def test_update_config_shrinks_to_new_bound(cache: InMemoryCache, clock):
    for key in ("a", "b", "c"):
        await cache.set(CacheKey(key), key)
        clock.advance_ms(1)
    cache.update_config(max_entries=1)
    assert cache.keys() == ["c"]
    assert cache.get_config().max_entries == 1
    assert cache.get_config().default_ttl_ms == 1000


def test_config_validation():
    with pytest.raises(ValueError):
        CacheConfig(max_entries=0)
    with pytest.raises(ValueError):
        CacheConfig(default_ttl_ms=0)
