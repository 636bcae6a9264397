# src/pipeline/poll.py — v1
"""Deep-phase status: complete iff a live deep row exists, else pending.

"pending" covers not started, running, failed and crashed alike; no
progress marker is stored anywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Literal

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.cache_key import is_valid_cache_key
from researchcache.core.errors import RequestValidationError
from researchcache.core.models import PHASE_DEEP, utc_now

logger = logging.getLogger(__name__)

PollStatus = Literal["pending", "complete"]


@dataclass
class PollResult:
    status: PollStatus
    cache_key: str
    data: Any = None
    sources: list[dict[str, Any]] = field(default_factory=list)


class PollStatusResolver:
    """Resolve deep-phase status from the cache alone."""

    def __init__(
        self, cache: BasePhaseCache, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._cache = cache
        self._clock = clock

    async def poll(self, tenant_id: str, cache_key: str) -> PollResult:
        if not tenant_id:
            raise RequestValidationError("tenant_id is required")
        if not is_valid_cache_key(cache_key):
            raise RequestValidationError(
                "cache_key must be 64 lowercase hex characters",
                issues=[{"message": "invalid cache_key", "path": ["cache_key"]}],
            )
        entry = await self._cache.get(tenant_id, cache_key, PHASE_DEEP, now=self._clock())
        if entry is None:
            logger.debug("Poll %s: pending", cache_key[:12])
            return PollResult(status="pending", cache_key=cache_key)
        return PollResult(
            status="complete",
            cache_key=cache_key,
            data=entry.results,
            sources=entry.sources,
        )
