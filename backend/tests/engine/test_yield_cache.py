"""Tests for the in-memory PVGIS response cache."""

import asyncio

import pytest

from engine.pv_yield.cache import InMemoryCacheStore

pytestmark = pytest.mark.asyncio

DAY = 24 * 3600.0


async def test_get_missing_returns_none():
    store = InMemoryCacheStore()
    assert await store.get("nope") is None


async def test_set_then_get(fake_clock):
    store = InMemoryCacheStore(clock=fake_clock)
    await store.set("k", {"v": 1}, ttl_seconds=DAY)
    assert await store.get("k") == {"v": 1}


async def test_entry_expires_after_ttl(fake_clock):
    store = InMemoryCacheStore(clock=fake_clock)
    await store.set("k", {"v": 1}, ttl_seconds=30 * DAY)

    fake_clock.advance(30 * DAY)
    assert await store.get("k") == {"v": 1}

    fake_clock.advance(1.0)
    assert await store.get("k") is None
    assert "k" not in store


async def test_full_store_evicts_oldest(fake_clock):
    store = InMemoryCacheStore(max_entries=3, clock=fake_clock)
    for key in ("a", "b", "c"):
        await store.set(key, {"key": key}, ttl_seconds=DAY)
        fake_clock.advance(1.0)

    await store.set("d", {"key": "d"}, ttl_seconds=DAY)

    assert len(store) == 3
    assert "a" not in store
    assert all(k in store for k in ("b", "c", "d"))


async def test_overwrite_does_not_evict(fake_clock):
    store = InMemoryCacheStore(max_entries=2, clock=fake_clock)
    await store.set("a", {"n": 1}, ttl_seconds=DAY)
    fake_clock.advance(1.0)
    await store.set("b", {"n": 2}, ttl_seconds=DAY)
    fake_clock.advance(1.0)

    await store.set("a", {"n": 3}, ttl_seconds=DAY)

    assert len(store) == 2
    assert await store.get("a") == {"n": 3}
    assert await store.get("b") == {"n": 2}


async def test_overwrite_refreshes_age(fake_clock):
    store = InMemoryCacheStore(max_entries=2, clock=fake_clock)
    await store.set("a", {}, ttl_seconds=DAY)
    fake_clock.advance(1.0)
    await store.set("b", {}, ttl_seconds=DAY)
    fake_clock.advance(1.0)
    await store.set("a", {}, ttl_seconds=DAY)
    fake_clock.advance(1.0)

    await store.set("c", {}, ttl_seconds=DAY)

    assert "b" not in store
    assert "a" in store and "c" in store


async def test_concurrent_writes_respect_bound(fake_clock):
    store = InMemoryCacheStore(max_entries=5, clock=fake_clock)
    await asyncio.gather(*(store.set(f"k{i}", {"i": i}, ttl_seconds=DAY) for i in range(20)))
    assert len(store) == 5


async def test_stats_and_clear(fake_clock):
    store = InMemoryCacheStore(clock=fake_clock)
    empty = await store.stats()
    assert empty.entries == 0
    assert empty.oldest_entry is None and empty.newest_entry is None

    await store.set("a", {}, ttl_seconds=DAY)
    fake_clock.advance(60.0)
    await store.set("b", {}, ttl_seconds=DAY)

    stats = await store.stats()
    assert stats.entries == 2
    assert (stats.newest_entry - stats.oldest_entry).total_seconds() == pytest.approx(60.0)

    await store.clear()
    assert len(store) == 0
    assert (await store.stats()).entries == 0


async def test_delete(fake_clock):
    store = InMemoryCacheStore(clock=fake_clock)
    await store.set("a", {}, ttl_seconds=DAY)
    await store.delete("a")
    await store.delete("missing")
    assert await store.get("a") is None


async def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        InMemoryCacheStore(max_entries=0)


async def test_returned_response_is_a_copy(fake_clock):
    store = InMemoryCacheStore(clock=fake_clock)
    original = {"outputs": {"totals": {"fixed": {"E_y": 100.0}}}}
    await store.set("k", original, ttl_seconds=DAY)

    original["outputs"]["totals"]["fixed"]["E_y"] = -1.0
    first = await store.get("k")
    first["outputs"]["totals"]["fixed"]["E_y"] = 0.0

    assert (await store.get("k"))["outputs"]["totals"]["fixed"]["E_y"] == 100.0
