# src/cache/memory_store.py - v2
"""In-process cache store (CACHE_BACKEND=memory).

Entries live for the lifetime of the store object. Writes are
last-writer-wins, and every write also drops entries whose time-to-live
has passed, so a long-running process does not accumulate dead keys.
"""

from __future__ import annotations

from docscribe.cache.base_cache_store import BaseCacheStore, Clock
from docscribe.cache.models import CacheEntry
from docscribe.config.profiles import CACHE_TTL_SECONDS


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache store."""

    def __init__(
        self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Clock | None = None
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._entries: dict[str, CacheEntry] = {}

    async def _load(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        # Copies in both directions so callers cannot mutate stored entries.
        return entry.model_copy() if entry is not None else None

    async def _store(self, key: str, entry: CacheEntry) -> None:
        self._prune_expired()
        self._entries[key] = entry.model_copy()

    def _prune_expired(self) -> None:
        now = self.now()
        expired = [
            key for key, entry in self._entries.items()
            if entry.is_expired(self.ttl_seconds, now)
        ]
        for key in expired:
            del self._entries[key]

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def list_keys(self) -> list[str]:
        return list(self._entries)
