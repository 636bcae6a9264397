# src/pipeline/deep.py — v1
"""Deep phase: accept synchronously, generate in the background.

trigger_deep() only validates the cache key and hands the job to the
background runner. The job itself:
  1. loads the live quick row (NotFoundError if absent),
  2. re-validates its stored search params (CacheCorruptionError, fatal),
  3. invokes the deep ladder,
  4. upserts the deep row with the deep TTL,
  5. optionally copies the result onto a subject record (best effort).

Failures after acceptance are only visible in logs and as a poll result
that stays "pending". No in-progress marker is persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.cache_key import is_valid_cache_key
from researchcache.cache.models import ResearchCacheEntry
from researchcache.core.errors import NotFoundError, RequestValidationError
from researchcache.core.models import PHASE_DEEP, PHASE_QUICK, utc_now
from researchcache.llm.invoker import GenerationInvoker
from researchcache.llm.ladder import EscalationLadder
from researchcache.pipeline.background import BackgroundTaskRunner
from researchcache.pipeline.propagation import BaseSubjectWriter, propagate_best_effort
from researchcache.pipeline.tasks.base import BaseResearchTask

logger = logging.getLogger(__name__)

DEFAULT_DEEP_TTL = timedelta(days=30)


@dataclass
class DeepAccepted:
    """Acknowledgement returned before any deep work starts."""

    cache_key: str
    status: str = "accepted"
    accepted_at: datetime = field(default_factory=utc_now)


class DeepPhaseOrchestrator:
    """Trigger and run background deep-phase generation.

    Args:
        cache: Tenant-scoped phase cache.
        invoker: Generation invoker (retry + escalation).
        task: Research task that builds the deep spec.
        ladder: Deep-phase escalation ladder.
        runner: Background runner that owns the spawned jobs.
        ttl: Lifetime of deep rows.
        subject_writer: Optional side writer for subject propagation.
        clock: Current-time source, injectable for tests.
    """

    def __init__(
        self,
        cache: BasePhaseCache,
        invoker: GenerationInvoker,
        task: BaseResearchTask,
        ladder: EscalationLadder,
        runner: BackgroundTaskRunner,
        ttl: timedelta = DEFAULT_DEEP_TTL,
        subject_writer: BaseSubjectWriter | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache = cache
        self._invoker = invoker
        self._task = task
        self._ladder = ladder
        self._runner = runner
        self._ttl = ttl
        self._subject_writer = subject_writer
        self._clock = clock

    async def trigger_deep(
        self, tenant_id: str, cache_key: str, subject_id: str | None = None
    ) -> DeepAccepted:
        """Validate and schedule; never waits for generation.

        Raises:
            RequestValidationError: If tenant or cache key is malformed.
        """
        if not tenant_id:
            raise RequestValidationError("tenant_id is required")
        if not is_valid_cache_key(cache_key):
            raise RequestValidationError(
                "cache_key must be 64 lowercase hex characters",
                issues=[{"message": "invalid cache_key", "path": ["cache_key"]}],
            )

        self._runner.spawn(
            self.run_deep(tenant_id, cache_key, subject_id),
            name=f"deep:{self._task.name}:{cache_key[:12]}",
            context={
                "tenant_id": tenant_id,
                "cache_key": cache_key,
                "phase": PHASE_DEEP,
                "task": self._task.name,
            },
        )
        logger.info("Deep research accepted for %s", cache_key[:12])
        return DeepAccepted(cache_key=cache_key, accepted_at=self._clock())

    async def run_deep(
        self, tenant_id: str, cache_key: str, subject_id: str | None = None
    ) -> ResearchCacheEntry:
        """The background continuation. Awaitable directly in tests.

        Raises:
            NotFoundError: If no live quick row exists for the key.
            CacheCorruptionError: If the quick row's params fail validation.
            LadderExhaustedError: If generation failed on every tier.
        """
        quick = await self._cache.get(tenant_id, cache_key, PHASE_QUICK, now=self._clock())
        if quick is None:
            raise NotFoundError(f"No quick-phase entry for {cache_key}")

        request = self._task.reparse_cached_params(cache_key, quick.search_params)
        spec = self._task.deep_spec(request, quick.results)
        result = await self._invoker.invoke(spec, self._ladder)

        data, sources = self._task.finalize_deep(request, result)
        entry = ResearchCacheEntry.from_result(
            tenant_id=tenant_id,
            cache_key=cache_key,
            phase=PHASE_DEEP,
            search_params=quick.search_params,
            result=result,
            ttl=self._ttl,
            results=data,
            sources=sources,
            now=self._clock(),
        )
        await self._cache.put(tenant_id, cache_key, PHASE_DEEP, entry)
        logger.info("Deep research stored (%d source(s))", len(sources))

        await propagate_best_effort(self._subject_writer, tenant_id, subject_id, entry)
        return entry
