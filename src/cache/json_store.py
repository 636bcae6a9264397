# src/cache/json_store.py — v3
"""JSON file-based cache store (default CACHE_BACKEND=json).

Layout: CACHE_ROOT/<tenant>/<phase>/<cache_key>.json, each segment
percent-encoded. Distinct tenants never share a directory, and a row read
back under a different identity is treated as a miss.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from urllib.parse import quote

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.models import CachePhase

logger = logging.getLogger(__name__)


class JsonPhaseCache(BasePhaseCache):
    """File-based phase cache using one JSON file per row."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        now: datetime | None = None,
    ) -> ResearchCacheEntry | None:
        """Retrieve the live entry, or None if absent, expired or unreadable."""
        self._require_tenant(tenant_id)
        path = self._entry_path(tenant_id, cache_key, phase)
        if not path.exists():
            return None
        try:
            entry = ResearchCacheEntry(**json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Failed to read cache entry %s/%s: %s", phase, cache_key, e)
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
        """Store a cache entry, replacing any previous row."""
        self._check_identity(tenant_id, cache_key, phase, entry)
        path = self._entry_path(tenant_id, cache_key, phase)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(f".{os.getpid()}.tmp")
        tmp.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)

    def _entry_path(self, tenant_id: str, cache_key: str, phase: str) -> Path:
        """Return file path for a composite key."""
        return self._root / _safe(tenant_id) / _safe(phase) / f"{_safe(cache_key)}.json"


def _safe(segment: str) -> str:
    # One-to-one; "." and ".." never reach the filesystem as path segments.
    return quote(segment, safe="").replace(".", "%2E")
