# src/cache/base_cache_store.py — v3
"""Abstract phase cache interface.

Every read and write is scoped by tenant_id. Stores are TTL-agnostic: the
caller sets expires_at at write time and get() treats an expired row as a
miss without deleting it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.models import CachePhase

logger = logging.getLogger(__name__)


class BasePhaseCache(ABC):
    """Unified interface for research cache backends."""

    @abstractmethod
    async def get(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        now: datetime | None = None,
    ) -> ResearchCacheEntry | None:
        """Return the live entry for the composite key, or None on miss."""

    @abstractmethod
    async def put(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        entry: ResearchCacheEntry,
    ) -> None:
        """Upsert on (tenant_id, cache_key, phase). Last write wins."""

    async def close(self) -> None:
        """Release backend resources."""

    @staticmethod
    def _require_tenant(tenant_id: str) -> None:
        if not tenant_id:
            raise ValueError("tenant_id is required for every cache read")

    @staticmethod
    def _check_identity(
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        entry: ResearchCacheEntry,
    ) -> None:
        """Refuse writes whose entry disagrees with the addressed row."""
        if not tenant_id:
            raise ValueError("tenant_id is required for every cache write")
        if entry.identity != (tenant_id, cache_key, phase):
            raise ValueError(
                f"Entry identity {entry.identity} does not match "
                f"target ({tenant_id}, {cache_key}, {phase})"
            )

    @staticmethod
    def _belongs_to(
        entry: ResearchCacheEntry,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
    ) -> bool:
        """True if a stored row carries the identity it was read under."""
        if entry.identity == (tenant_id, cache_key, phase):
            return True
        logger.error(
            "Cache row identity %s does not match lookup (%s, %s, %s); treating as miss",
            entry.identity, tenant_id, cache_key, phase,
        )
        return False
