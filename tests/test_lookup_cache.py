import pytest

from iptv_ingest.utils.lookup_cache import LookupCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_entries_expire(clock):
    cache = LookupCache(10, sliding=False, timer=clock)
    cache.set("groups", ["News"])

    clock.now = 9
    assert cache.get("groups") == ["News"]

    clock.now = 11
    assert cache.get("groups") is None
    assert len(cache) == 0


def test_sliding_expiration_restarts_ttl(clock):
    cache = LookupCache(10, sliding=True, timer=clock)
    cache.set("groups", ["News"])

    clock.now = 8
    assert cache.get("groups") == ["News"]

    clock.now = 16
    assert cache.get("groups") == ["News"]

    clock.now = 27
    assert "groups" not in cache


def test_get_or_create_calls_factory_once(clock):
    cache = LookupCache(10, timer=clock)
    calls = []

    def factory():
        calls.append(1)
        return 42

    assert cache.get_or_create("answer", factory) == 42
    assert cache.get_or_create("answer", factory) == 42
    assert len(calls) == 1


async def test_get_or_create_async(clock):
    cache = LookupCache(10, timer=clock)

    async def factory():
        return "value"

    assert await cache.get_or_create_async("key", factory) == "value"
    assert "key" in cache


def test_invalidate_and_clear(clock):
    cache = LookupCache(10, timer=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    cache.clear()
    assert len(cache) == 0


def test_falsy_values_are_cached(clock):
    cache = LookupCache(10, timer=clock)
    cache.set("empty", [])

    assert cache.get_or_create("empty", lambda: ["rebuilt"]) == []


@pytest.mark.parametrize("ttl, maxsize", [(0, 10), (10, 0)])
def test_invalid_arguments(ttl, maxsize):
    with pytest.raises(ValueError):
        LookupCache(ttl, maxsize)
