# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency. The composite primary key
(tenant_id, cache_key, phase) is the upsert conflict target and the
expiry comparison happens in the WHERE clause of every read.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.models import CachePhase, utc_now

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS research_cache (
    tenant_id TEXT NOT NULL,
    cache_key TEXT NOT NULL,
    phase TEXT NOT NULL,
    data TEXT NOT NULL,
    model_used TEXT,
    prompt_version TEXT,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL,
    PRIMARY KEY (tenant_id, cache_key, phase)
);
CREATE INDEX IF NOT EXISTS idx_research_cache_expires ON research_cache(expires_at);
"""

_UPSERT = """
INSERT INTO research_cache
    (tenant_id, cache_key, phase, data, model_used, prompt_version, created_at, expires_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (tenant_id, cache_key, phase) DO UPDATE SET
    data = excluded.data,
    model_used = excluded.model_used,
    prompt_version = excluded.prompt_version,
    created_at = excluded.created_at,
    expires_at = excluded.expires_at
"""


class SqlitePhaseCache(BasePhaseCache):
    """SQLite-backed phase cache for single-host deployments."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        now: datetime | None = None,
    ) -> ResearchCacheEntry | None:
        """Retrieve the live entry for the composite key."""
        self._require_tenant(tenant_id)
        current = (now or utc_now()).timestamp()
        cursor = self._conn.execute(
            """SELECT data FROM research_cache
               WHERE tenant_id = ? AND cache_key = ? AND phase = ? AND expires_at > ?""",
            (tenant_id, cache_key, phase, current),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            entry = ResearchCacheEntry.model_validate_json(row[0])
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s/%s: %s", phase, cache_key, e)
            return None
        if not self._belongs_to(entry, tenant_id, cache_key, phase):
            return None
        return entry

    async def put(
        self,
        tenant_id: str,
        cache_key: str,
        phase: CachePhase,
        entry: ResearchCacheEntry,
    ) -> None:
        """Store a cache entry (upsert)."""
        self._check_identity(tenant_id, cache_key, phase, entry)
        self._conn.execute(
            _UPSERT,
            (
                tenant_id,
                cache_key,
                phase,
                entry.model_dump_json(),
                entry.model_used,
                entry.prompt_version,
                entry.created_at.timestamp(),
                entry.expires_at.timestamp(),
            ),
        )
        self._conn.commit()

    def row_count(self) -> int:
        """Physical rows, including expired ones."""
        return self._conn.execute("SELECT COUNT(*) FROM research_cache").fetchone()[0]

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
