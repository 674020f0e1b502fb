# src/cache/base_cache_store.py - v2
"""Abstract cache store interface with TTL eviction.

Subclasses implement raw persistence (_load/_store/delete/list_keys). The
public get/put wrap them with expiry and best-effort error handling: the cache
is an optimization, so storage failures never reach the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

from docscribe.cache.models import CacheEntry
from docscribe.config.profiles import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    def __init__(
        self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Clock | None = None
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock or utc_now

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    async def get(self, key: str) -> CacheEntry | None:
        """Return a live entry, evicting it if expired. Read errors yield None."""
        try:
            entry = await self._load(key)
        except Exception as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

        if entry is None:
            return None

        if entry.is_expired(self._ttl_seconds, self.now()):
            logger.debug("Cache entry expired: %s", key)
            try:
                await self.delete(key)
            except Exception as e:
                logger.warning("Cache eviction failed for %s: %s", key, e)
            return None

        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store an entry. Failures (quota, I/O) are logged and ignored."""
        try:
            await self._store(key, entry)
        except Exception as e:
            logger.warning("Cache write skipped for %s: %s", key, e)

    @abstractmethod
    async def _load(self, key: str) -> CacheEntry | None:
        """Read the raw entry for a key, expired or not."""

    @abstractmethod
    async def _store(self, key: str, entry: CacheEntry) -> None:
        """Persist an entry (upsert)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry."""

    @abstractmethod
    async def list_keys(self) -> list[str]:
        """List stored keys, including expired ones not yet evicted."""
