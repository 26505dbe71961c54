# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from expertmesh.cache.base_cache_store import BaseCacheStore
from expertmesh.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. None gives an in-memory SQLite cache.
    """
    if settings is None:
        from expertmesh.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=":memory:")

    backend = settings.cache_backend

    if backend == "sqlite":
        from expertmesh.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=settings.cache_path)

    if backend == "redis":
        from expertmesh.cache.redis_store import RedisCacheStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
