# src/cache/models.py — v2
"""Cache domain models: ResearchCacheEntry.

One entry per (tenant_id, cache_key, phase). Entries are replaced whole on
write, and an entry is live only while now < expires_at.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from researchcache.core.models import CachePhase, GenerationResult, utc_now


class ResearchCacheEntry(BaseModel):
    """Single cache row linking a derived key to a generation payload."""

    tenant_id: str = Field(min_length=1)
    cache_key: str = Field(min_length=1, max_length=64)
    phase: CachePhase
    search_params: dict[str, Any]
    results: Any
    sources: list[dict[str, Any]] = Field(default_factory=list)
    model_used: str
    prompt_version: str
    created_at: datetime
    expires_at: datetime

    @field_validator("created_at", "expires_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC so expiry comparisons never mix kinds."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_live(self, now: datetime | None = None) -> bool:
        """True while the entry has not yet expired."""
        current = now or utc_now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current < self.expires_at

    @property
    def identity(self) -> tuple[str, str, str]:
        """Composite key the stores upsert on."""
        return (self.tenant_id, self.cache_key, self.phase)

    @classmethod
    def from_result(
        cls,
        *,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        search_params: dict[str, Any],
        result: GenerationResult,
        ttl: timedelta,
        sources: list[dict[str, Any]] | None = None,
        results: Any = None,
        now: datetime | None = None,
    ) -> ResearchCacheEntry:
        """Wrap a fresh GenerationResult with the caller-supplied TTL."""
        created = now or utc_now()
        return cls(
            tenant_id=tenant_id,
            cache_key=cache_key,
            phase=phase,
            search_params=search_params,
            results=result.data if results is None else results,
            sources=sources or [],
            model_used=result.metadata.model_used,
            prompt_version=result.metadata.prompt_version,
            created_at=created,
            expires_at=created + ttl,
        )
