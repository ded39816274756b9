"""
Lookup cache for callers of the ingest core

Holds key/value lookups (category lists, group lists, analysis results)
with TTL expiration. With sliding expiration a hit restarts the entry's TTL.
The parsers never reference a cache; callers receive one from the service
locator and decide what to memoize.
"""
import logging
import threading
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Generic, TypeVar

from cachetools import TTLCache

logger = logging.getLogger(__name__)

V = TypeVar("V")

_MISSING = object()


class LookupCache(Generic[V]):
    """TTL cache with optional sliding expiration"""

    def __init__(self, ttl_seconds: float, maxsize: int = 1024, *, sliding: bool = True, timer: Callable[[], float] | None = None):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if maxsize <= 0:
            raise ValueError("maxsize must be > 0")

        self.ttl_seconds = ttl_seconds
        self.sliding = sliding
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer or time.monotonic)
        self._lock = threading.RLock()

    def get(self, key: Hashable, default: Any = None) -> V | Any:
        with self._lock:
            value = self._cache.get(key, _MISSING)
            if value is _MISSING:
                return default
            if self.sliding:
                # Re-inserting restarts the TTL
                self._cache[key] = value
            return value

    def set(self, key: Hashable, value: V) -> None:
        with self._lock:
            self._cache[key] = value

    def get_or_create(self, key: Hashable, factory: Callable[[], V]) -> V:
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        logger.debug("Lookup cache miss for %r", key)
        value = factory()
        self.set(key, value)
        return value

    async def get_or_create_async(self, key: Hashable, factory: Callable[[], Awaitable[V]]) -> V:
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        logger.debug("Lookup cache miss for %r", key)
        value = await factory()
        self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> bool:
        with self._lock:
            return self._cache.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
