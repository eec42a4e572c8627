"""
Expiring key/value caches.

``MemoryCache`` keeps entries in process with an injectable clock;
``RedisCache`` stores JSON under a key prefix with ``SETEX``. Both expire
entries after ``ttl_seconds`` and can be invalidated per key or wholesale.
"""

import json
import time
from typing import Any, Callable

import redis

from api.common.documents import build_cache_key
from api.common.logging_config import get_logger

logger = get_logger(__name__)


class ExpiringCache:
    """Interface shared by the cache backends."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    def get(self, key: str):
        raise NotImplementedError

    def set(self, key: str, value: Any):
        raise NotImplementedError

    def invalidate(self, key: str | None = None):
        raise NotImplementedError


class MemoryCache(ExpiringCache):
    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl_seconds)
        self.clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any):
        self._entries[key] = (value, self.clock() + self.ttl_seconds)

    def invalidate(self, key: str | None = None):
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


class RedisCache(ExpiringCache):
    def __init__(self, redis_client: redis.Redis, ttl_seconds: int, prefix: str = "cache"):
        super().__init__(ttl_seconds)
        self.redis_client = redis_client
        self.prefix = prefix

    def get(self, key: str):
        """
        Read a cached value.

        Args:
            key (str): Key without the prefix.

        Returns:
            Any: Decoded value, or None on a miss, a decode failure or a Redis error.
        """
        try:
            cached = self.redis_client.get(build_cache_key(self.prefix, key))
        except redis.RedisError as error:
            logger.warning("Cache read failed for %s: %s", key, error)
            return None
        if not cached:
            return None
        try:
            return json.loads(cached)
        except json.JSONDecodeError:
            return None

    def set(self, key: str, value: Any):
        try:
            self.redis_client.setex(build_cache_key(self.prefix, key), self.ttl_seconds, json.dumps(value))
        except redis.RedisError as error:
            logger.warning("Cache write failed for %s: %s", key, error)

    def invalidate(self, key: str | None = None):
        try:
            if key is not None:
                self.redis_client.delete(build_cache_key(self.prefix, key))
                return
            for cached_key in self.redis_client.scan_iter(f"{self.prefix}:*"):
                self.redis_client.delete(cached_key)
        except redis.RedisError as error:
            logger.warning("Cache invalidation failed for %s: %s", key or "*", error)
