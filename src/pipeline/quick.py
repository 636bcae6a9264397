# src/pipeline/quick.py — v1
"""Quick phase: cache-first synchronous generation.

A live quick row short-circuits generation entirely; on a miss the quick
ladder is invoked once and the result is upserted with the quick TTL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.models import PHASE_DEEP, PHASE_QUICK, utc_now
from researchcache.llm.invoker import GenerationInvoker
from researchcache.llm.ladder import EscalationLadder
from researchcache.logging.context import set_phase_context, set_request_context
from researchcache.pipeline.tasks.base import BaseResearchTask

logger = logging.getLogger(__name__)

DEFAULT_QUICK_TTL = timedelta(days=30)


@dataclass
class QuickResult:
    """Outcome of one quick-phase request."""

    data: Any
    cached: bool
    cache_key: str
    deep_research_available: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


class QuickPhaseOrchestrator:
    """Serve quick-phase results from cache, generating on miss.

    Args:
        cache: Tenant-scoped phase cache.
        invoker: Generation invoker (retry + escalation).
        task: Research task that builds the quick spec.
        ladder: Quick-phase escalation ladder.
        ttl: Lifetime of freshly written quick rows.
        clock: Current-time source, injectable for tests.
    """

    def __init__(
        self,
        cache: BasePhaseCache,
        invoker: GenerationInvoker,
        task: BaseResearchTask,
        ladder: EscalationLadder,
        ttl: timedelta = DEFAULT_QUICK_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache = cache
        self._invoker = invoker
        self._task = task
        self._ladder = ladder
        self._ttl = ttl
        self._clock = clock

    async def run_quick(self, tenant_id: str, request: Any) -> QuickResult:
        """Return quick-phase data for `request` under `tenant_id`.

        Raises:
            RequestValidationError: If the request payload is invalid.
            LadderExhaustedError: If generation failed on every tier.
            ProviderConfigurationError: If the provider is misconfigured.
        """
        parsed = self._task.parse_request(request)
        cache_key = self._task.cache_key(parsed)
        set_request_context(tenant_id, cache_key)
        set_phase_context(PHASE_QUICK, self._task.name)

        now = self._clock()
        hit = await self._cache.get(tenant_id, cache_key, PHASE_QUICK, now=now)
        if hit is not None:
            deep = await self._cache.get(tenant_id, cache_key, PHASE_DEEP, now=now)
            logger.info("Quick cache hit (deep available: %s)", deep is not None)
            return QuickResult(
                data=hit.results,
                cached=True,
                cache_key=cache_key,
                deep_research_available=deep is not None,
                metadata=_metadata(hit),
            )

        logger.info("Quick cache miss, generating")
        result = await self._invoker.invoke(self._task.quick_spec(parsed), self._ladder)
        entry = ResearchCacheEntry.from_result(
            tenant_id=tenant_id,
            cache_key=cache_key,
            phase=PHASE_QUICK,
            search_params=self._task.search_params(parsed),
            result=result,
            ttl=self._ttl,
            now=self._clock(),
        )
        try:
            await self._cache.put(tenant_id, cache_key, PHASE_QUICK, entry)
        except Exception as e:
            # The generated result is still returned; the next request regenerates.
            logger.error("Quick cache write failed: %s: %s", type(e).__name__, e)

        return QuickResult(
            data=entry.results,
            cached=False,
            cache_key=cache_key,
            deep_research_available=False,
            metadata=_metadata(entry),
        )


def _metadata(entry: ResearchCacheEntry) -> dict[str, Any]:
    return {
        "model_used": entry.model_used,
        "prompt_version": entry.prompt_version,
        "generated_at": entry.created_at.isoformat(),
        "expires_at": entry.expires_at.isoformat(),
    }
