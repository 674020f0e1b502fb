# src/cache/sqlite_store.py - v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from docscribe.cache.base_cache_store import BaseCacheStore, Clock
from docscribe.cache.models import CacheEntry
from docscribe.config.profiles import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_created_at ON cache_entries(created_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(
        self,
        db_path: Path | str,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def _load(self, key: str) -> CacheEntry | None:
        cursor = self._conn.execute(
            "SELECT data FROM cache_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def _store(self, key: str, entry: CacheEntry) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO cache_entries (key, data, created_at)
               VALUES (?, ?, ?)""",
            (key, entry.model_dump_json(), entry.created_at.isoformat()),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()

    async def list_keys(self) -> list[str]:
        cursor = self._conn.execute("SELECT key FROM cache_entries")
        return [row[0] for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
