# src/cache/cache_factory.py - v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from docscribe.cache.base_cache_store import BaseCacheStore
from docscribe.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore | None:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to an in-memory store.

    Returns:
        Configured BaseCacheStore, or None when caching is disabled.
    """
    if settings is None:
        from docscribe.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    if not settings.cache_enabled:
        return None

    backend = settings.cache_backend
    ttl = settings.cache_ttl_seconds

    if backend == "memory":
        from docscribe.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore(ttl_seconds=ttl)

    if backend == "json":
        from docscribe.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=settings.cache_root, ttl_seconds=ttl)

    if backend == "sqlite":
        from docscribe.cache.sqlite_store import SqliteCacheStore
        db_path = settings.cache_root.expanduser() / "docscribe_cache.db"
        return SqliteCacheStore(db_path=db_path, ttl_seconds=ttl)

    if backend == "redis":
        from docscribe.cache.redis_store import RedisCacheStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url, ttl_seconds=ttl)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
