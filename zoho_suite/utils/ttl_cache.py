"""TTL cache for short-lived metadata lookups (modules, fields, departments, forms)."""

import asyncio
import functools
import time
import weakref
from collections.abc import Callable
from typing import Any

from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_METADATA_TTL_SECONDS = 300.0


class TTLCache:
    """Per-key values that expire ``ttl`` seconds after they were stored."""

    def __init__(self, ttl: float = DEFAULT_METADATA_TTL_SECONDS):
        """
        Args:
            ttl: Time-to-live in seconds
        """
        self.ttl = ttl
        self.cache: dict[tuple, tuple[float, Any]] = {}
        self.lock = asyncio.Lock()

    async def get(self, key: tuple) -> Any | None:
        async with self.lock:
            if key in self.cache:
                stored_at, value = self.cache[key]
                if time.monotonic() - stored_at < self.ttl:
                    return value
                del self.cache[key]
            return None

    async def set(self, key: tuple, value: Any) -> None:
        async with self.lock:
            self.cache[key] = (time.monotonic(), value)

    async def clear(self) -> None:
        async with self.lock:
            self.cache.clear()

    async def cleanup_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        async with self.lock:
            now = time.monotonic()
            expired = [key for key, (stored_at, _) in self.cache.items() if now - stored_at >= self.ttl]
            for key in expired:
                del self.cache[key]
            return len(expired)


def ttl_cache(ttl: float = DEFAULT_METADATA_TTL_SECONDS) -> Callable:
    """Cache an async method's result per instance and arguments.

    Each instance gets its own TTLCache, dropped with the instance. Only use for
    metadata; domain records must always be fetched live.
    """

    def decorator(func: Callable) -> Callable:
        caches: weakref.WeakKeyDictionary[Any, TTLCache] = weakref.WeakKeyDictionary()

        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            cache = caches.get(self)
            if cache is None:
                cache = caches[self] = TTLCache(ttl=ttl)
            cache_key = (func.__name__, args, tuple(sorted(kwargs.items())))

            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                logger.debug("Metadata cache hit", function=func.__name__, args=args)
                return cached_value

            result = await func(self, *args, **kwargs)

            await cache.set(cache_key, result)
            logger.debug("Cached metadata", function=func.__name__, args=args, ttl=ttl)
            return result

        return wrapper

    return decorator
