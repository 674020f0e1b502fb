# tests/unit/cache/test_cache_factory.py - v2
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

from docscribe.cache.cache_factory import create_cache_store
from docscribe.cache.json_store import JsonCacheStore
from docscribe.cache.memory_store import MemoryCacheStore
from docscribe.cache.sqlite_store import SqliteCacheStore
from docscribe.config.settings import Settings


def _settings(tmp_path, **kw) -> Settings:
    return Settings(_env_file=None, cache_root=tmp_path, **kw)


class TestCreateCacheStore:
    def test_default_is_memory(self):
        assert isinstance(create_cache_store(), MemoryCacheStore)

    def test_disabled(self, tmp_path):
        assert create_cache_store(_settings(tmp_path, cache_enabled=False)) is None

    def test_memory(self, tmp_path):
        store = create_cache_store(_settings(tmp_path, cache_backend="memory"))
        assert isinstance(store, MemoryCacheStore)

    def test_json(self, tmp_path):
        store = create_cache_store(_settings(tmp_path, cache_backend="json"))
        assert isinstance(store, JsonCacheStore)

    def test_sqlite(self, tmp_path):
        store = create_cache_store(_settings(tmp_path, cache_backend="sqlite"))
        assert isinstance(store, SqliteCacheStore)
        assert (tmp_path / "docscribe_cache.db").exists()
        store.close()

    def test_ttl_forwarded(self, tmp_path):
        store = create_cache_store(
            _settings(tmp_path, cache_backend="memory", cache_ttl_seconds=30)
        )
        assert store.ttl_seconds == 30
