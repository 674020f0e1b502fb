# src/cache/redis_store.py - v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments. Entries also carry a server-side
expiry so Redis reclaims them without a read.
"""

from __future__ import annotations

import logging
import math

from docscribe.cache.base_cache_store import BaseCacheStore, Clock
from docscribe.cache.models import CacheEntry
from docscribe.config.profiles import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

_KEY_PREFIX = "docscribe:cache:"
_INDEX_KEY = "docscribe:cache:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def _load(self, key: str) -> CacheEntry | None:
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return CacheEntry.model_validate_json(data)
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def _store(self, key: str, entry: CacheEntry) -> None:
        self._client.set(
            f"{_KEY_PREFIX}{key}",
            entry.model_dump_json(),
            ex=max(1, math.ceil(self.ttl_seconds)),
        )
        self._client.sadd(_INDEX_KEY, key)

    async def delete(self, key: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)

    async def list_keys(self) -> list[str]:
        return sorted(self._client.smembers(_INDEX_KEY))
