# src/cache/redis_store.py — v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments. Keys embed the tenant
as their first segment. No Redis TTL is set: expiry stays lazy and is
checked on read like every other backend.
"""

from __future__ import annotations

import logging
from datetime import datetime
from urllib.parse import quote

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.models import CachePhase

logger = logging.getLogger(__name__)

_KEY_PREFIX = "researchcache:"


class RedisPhaseCache(BasePhaseCache):
    """Redis-backed phase cache for distributed deployments."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        now: datetime | None = None,
    ) -> ResearchCacheEntry | None:
        """Retrieve the live entry for the composite key."""
        self._require_tenant(tenant_id)
        data = self._client.get(_redis_key(tenant_id, cache_key, phase))
        if data is None:
            return None
        try:
            entry = ResearchCacheEntry.model_validate_json(data)
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s/%s: %s", phase, cache_key, e)
            return None
        if not self._belongs_to(entry, tenant_id, cache_key, phase):
            return None
        if not entry.is_live(now):
            return None
        return entry

    async def put(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        entry: ResearchCacheEntry,
    ) -> None:
        """Store a cache entry. SET overwrites, which is the upsert."""
        self._check_identity(tenant_id, cache_key, phase, entry)
        self._client.set(_redis_key(tenant_id, cache_key, phase), entry.model_dump_json())

    async def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()


def _redis_key(tenant_id: str, cache_key: str, phase: str) -> str:
    return f"{_KEY_PREFIX}{quote(tenant_id, safe='')}:{phase}:{quote(cache_key, safe='')}"
