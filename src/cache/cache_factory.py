# src/cache/cache_factory.py — v3
"""Factory for phase cache instantiation."""

from __future__ import annotations

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BasePhaseCache:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to JSON backend.

    Returns:
        Configured BasePhaseCache implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    cache_root = "output/.cache" if settings is None else str(settings.cache_root)

    if backend == "memory":
        from researchcache.cache.memory_store import MemoryPhaseCache
        return MemoryPhaseCache()

    if backend == "json":
        from researchcache.cache.json_store import JsonPhaseCache
        return JsonPhaseCache(cache_root=cache_root)

    if backend == "sqlite":
        from researchcache.cache.sqlite_store import SqlitePhaseCache
        return SqlitePhaseCache(db_path=f"{cache_root}/research_cache.db")

    if backend == "redis":
        from researchcache.cache.redis_store import RedisPhaseCache
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisPhaseCache(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
