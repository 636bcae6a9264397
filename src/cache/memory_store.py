# src/cache/memory_store.py — v1
"""In-process cache store (CACHE_BACKEND=memory).

Suitable for tests and single-process deployments. Entries are stored as
serialized JSON so callers never share mutable state with the store.
"""

from __future__ import annotations

from datetime import datetime

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.models import CachePhase


class MemoryPhaseCache(BasePhaseCache):
    """Dict-backed phase cache keyed by (tenant_id, cache_key, phase)."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str, str], str] = {}

    async def get(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        now: datetime | None = None,
    ) -> ResearchCacheEntry | None:
        self._require_tenant(tenant_id)
        raw = self._rows.get((tenant_id, cache_key, phase))
        if raw is None:
            return None
        entry = ResearchCacheEntry.model_validate_json(raw)
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
        self._check_identity(tenant_id, cache_key, phase, entry)
        self._rows[(tenant_id, cache_key, phase)] = entry.model_dump_json()

    def row_count(self) -> int:
        """Physical rows, including expired ones."""
        return len(self._rows)

    def has_row(self, tenant_id: str, cache_key: str, phase: CachePhase) -> bool:
        """True if a row exists regardless of expiry."""
        return (tenant_id, cache_key, phase) in self._rows
