"""Tests for the TTL cache."""

import pytest

from team_analytics.services.cache import DEFAULT_TTL_MS, TTLCache


class Producer:
    """Counts invocations and returns a fresh value each time."""

    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("producer failed")
        return f"value-{self.calls}"


def test_default_ttl_is_five_minutes():
    assert DEFAULT_TTL_MS == 300_000
    assert TTLCache().ttl_ms == DEFAULT_TTL_MS


def test_negative_ttl_rejected():
    with pytest.raises(ValueError):
        TTLCache(ttl_ms=-1)


async def test_miss_then_hit(clock):
    cache = TTLCache(ttl_ms=1000, clock=clock)
    producer = Producer()

    first = await cache.get_or_compute("k", producer)
    second = await cache.get_or_compute("k", producer)

    assert first == second == "value-1"
    assert producer.calls == 1
    assert (cache.hits, cache.misses) == (1, 1)


async def test_entry_expires_after_ttl(clock):
    cache = TTLCache(ttl_ms=100, clock=clock)
    producer = Producer()

    await cache.get_or_compute("k", producer)  # t=0
    clock.advance(milliseconds=50)
    assert await cache.get_or_compute("k", producer) == "value-1"  # t=50
    clock.advance(milliseconds=100)
    assert await cache.get_or_compute("k", producer) == "value-2"  # t=150

    assert producer.calls == 2


async def test_entry_at_exact_ttl_is_stale(clock):
    cache = TTLCache(ttl_ms=100, clock=clock)
    cache.put("k", "v")
    clock.advance(milliseconds=100)
    assert "k" not in cache
    assert cache.get("k", default="missing") == "missing"


async def test_failure_caches_nothing(clock):
    cache = TTLCache(ttl_ms=100, clock=clock)

    with pytest.raises(RuntimeError):
        await cache.get_or_compute("k", Producer(fail=True))

    assert len(cache) == 0


async def test_failure_leaves_stale_entry_in_place(clock):
    cache = TTLCache(ttl_ms=100, clock=clock)
    cache.put("k", "old")
    clock.advance(milliseconds=500)

    with pytest.raises(RuntimeError):
        await cache.get_or_compute("k", Producer(fail=True))

    assert len(cache) == 1
    assert cache.get("k") is None
    assert cache.get("k", ttl_ms=1000) == "old"
    assert cache.peek("k").value == "old"

    assert await cache.get_or_compute("k", Producer()) == "value-1"


async def test_keys_are_independent(clock):
    cache = TTLCache(clock=clock)
    week, month = Producer(), Producer()

    await cache.get_or_compute("week", week)
    await cache.get_or_compute("month", month)

    assert week.calls == month.calls == 1
    assert len(cache) == 2


async def test_per_call_ttl_override(clock):
    cache = TTLCache(ttl_ms=1000, clock=clock)
    producer = Producer()

    await cache.get_or_compute("k", producer)
    clock.advance(milliseconds=20)
    await cache.get_or_compute("k", producer, ttl_ms=10)

    assert producer.calls == 2


def test_invalidate_and_clear(clock):
    cache = TTLCache(clock=clock)
    cache.put("a", 1)
    cache.put("b", 2)

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert "b" in cache

    cache.clear()
    assert len(cache) == 0
    assert "b" not in cache
