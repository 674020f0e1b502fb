# src/cache/json_store.py - v2
"""JSON file-based cache store (default CACHE_BACKEND=json).

Stores cache entries as individual JSON files under CACHE_ROOT. Keys are
hashed into file names because fingerprint keys contain ':'.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

from docscribe.cache.base_cache_store import BaseCacheStore, Clock
from docscribe.cache.models import CacheEntry
from docscribe.config.profiles import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(
        self,
        cache_root: Path | str,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def _load(self, key: str) -> CacheEntry | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(**data["entry"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Failed to read cache entry %s: %s", key, e)
            return None

    async def _store(self, key: str, entry: CacheEntry) -> None:
        path = self._entry_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"key": key, "entry": entry.model_dump(mode="json")}
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def list_keys(self) -> list[str]:
        keys: list[str] = []
        if not self._root.is_dir():
            return keys

        for path in self._root.glob("*.json"):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                keys.append(data["key"])
            except (json.JSONDecodeError, KeyError, OSError):
                continue

        return keys

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"
