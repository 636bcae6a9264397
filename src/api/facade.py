# src/api/facade.py — v3
"""Public API facade: one service object per process.

Usage:
    from researchcache.api.facade import ResearchService
    service = ResearchService.from_settings()
    quick = await service.market_insights("org-1", {"role": ..., ...})
    await service.trigger_deep_research("org-1", {"cache_key": quick.cache_key})
    ...
    await service.drain()   # before process exit

Tenant ids come from upstream authentication; every call is scoped by one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from pydantic import ValidationError

from researchcache.api.models import (
    DeepAcceptedResponse,
    DeepTriggerRequest,
    ListingsResponse,
    PollResponse,
    QuickResponse,
)
from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.cache_factory import create_cache_store
from researchcache.cache.cache_key import is_valid_cache_key
from researchcache.config.settings import Settings, load_settings
from researchcache.core.errors import NotFoundError, RequestValidationError
from researchcache.core.models import PHASE_DEEP, PHASE_QUICK, utc_now
from researchcache.llm.config import build_ladder
from researchcache.llm.invoker import ClientProvider, GenerationInvoker, settings_client_provider
from researchcache.llm.retry import SleepFn
from researchcache.pipeline.background import BackgroundTaskRunner
from researchcache.pipeline.deep import DeepPhaseOrchestrator
from researchcache.pipeline.listings import ListingsOrchestrator
from researchcache.pipeline.poll import PollStatusResolver
from researchcache.pipeline.propagation import BaseSubjectWriter
from researchcache.pipeline.quick import QuickPhaseOrchestrator
from researchcache.pipeline.tasks.market_insights import MarketInsightsTask, build_market_context
from researchcache.search.base_search_client import BaseSearchClient
from researchcache.search.link_checker import LinkChecker
from researchcache.tracking.call_logger import CallLogger
from researchcache.tracking.models import CallStats

logger = logging.getLogger(__name__)


class ResearchService:
    """Wires cache, ladders, invoker and orchestrators together.

    Args:
        settings: Global settings.
        cache: Phase cache backend. Built from settings if None.
        client_provider: Tier -> LLM client. Built from settings if None.
        search_client: Web search provider. Tavily from settings if None.
        subject_writer: Optional deep-result propagation target.
        link_checker: Dead-link filter for listings. Built from settings
            when None and LISTINGS_CHECK_LINKS is on.
        clock: Current-time source shared by every orchestrator.
        sleep: Backoff sleep used between same-tier retries.
    """

    def __init__(
        self,
        settings: Settings,
        cache: BasePhaseCache | None = None,
        client_provider: ClientProvider | None = None,
        search_client: BaseSearchClient | None = None,
        subject_writer: BaseSubjectWriter | None = None,
        link_checker: LinkChecker | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._cache = cache or create_cache_store(settings)
        self._clock = clock
        self._call_logger = CallLogger()
        self._invoker = GenerationInvoker(
            client_provider or settings_client_provider(settings),
            call_logger=self._call_logger,
            sleep=sleep,
        )
        self._runner = BackgroundTaskRunner(time_budget_s=settings.deep_time_budget_s)
        self._task = MarketInsightsTask(market_focus_default=settings.market_focus_default)

        self._quick = QuickPhaseOrchestrator(
            cache=self._cache,
            invoker=self._invoker,
            task=self._task,
            ladder=build_ladder("quick", settings),
            ttl=timedelta(days=settings.cache_ttl_quick_days),
            clock=clock,
        )
        self._deep = DeepPhaseOrchestrator(
            cache=self._cache,
            invoker=self._invoker,
            task=self._task,
            ladder=build_ladder("deep", settings),
            runner=self._runner,
            ttl=timedelta(days=settings.cache_ttl_deep_days),
            subject_writer=subject_writer,
            clock=clock,
        )
        self._poll = PollStatusResolver(self._cache, clock=clock)

        if search_client is None:
            from researchcache.search.tavily_client import TavilySearchClient

            search_client = TavilySearchClient(api_key=settings.tavily_api_key)
        if link_checker is None and settings.listings_check_links:
            link_checker = LinkChecker(timeout_s=settings.listings_link_timeout_s)
        self._link_checker = link_checker
        self._listings = ListingsOrchestrator(
            cache=self._cache,
            search_client=search_client,
            ttl=timedelta(days=settings.cache_ttl_listings_days),
            max_results=settings.listings_max_results,
            limit=settings.listings_limit,
            link_checker=link_checker,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> ResearchService:
        """Build a service from .env settings (or the given ones)."""
        return cls(settings or load_settings(), **kwargs)

    @property
    def cache(self) -> BasePhaseCache:
        return self._cache

    @property
    def runner(self) -> BackgroundTaskRunner:
        return self._runner

    @property
    def call_logger(self) -> CallLogger:
        return self._call_logger

    # --- Market insights ---

    async def market_insights(self, tenant_id: str, payload: Any) -> QuickResponse:
        """Quick-phase market insights, cache first.

        Raises:
            RequestValidationError: Bad tenant or payload.
            LadderExhaustedError: Generation failed on every tier.
        """
        _require_tenant(tenant_id)
        result = await self._quick.run_quick(tenant_id, payload)
        return QuickResponse(
            data=result.data,
            cached=result.cached,
            cache_key=result.cache_key,
            deep_research_available=result.deep_research_available,
            metadata=result.metadata,
        )

    async def trigger_deep_research(self, tenant_id: str, payload: Any) -> DeepAcceptedResponse:
        """Accept a deep-research job; generation continues in the background."""
        _require_tenant(tenant_id)
        try:
            request = DeepTriggerRequest.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(
                "Invalid deep research request",
                issues=[
                    {"message": err["msg"], "path": [str(p) for p in err["loc"]]}
                    for err in e.errors()
                ],
            ) from e
        accepted = await self._deep.trigger_deep(tenant_id, request.cache_key, request.subject_id)
        return DeepAcceptedResponse(cache_key=accepted.cache_key, accepted_at=accepted.accepted_at)

    async def poll_deep_research(self, tenant_id: str, cache_key: str) -> PollResponse:
        _require_tenant(tenant_id)
        result = await self._poll.poll(tenant_id, cache_key)
        return PollResponse(
            status=result.status,
            cache_key=result.cache_key,
            data=result.data,
            sources=result.sources,
        )

    async def market_context(self, tenant_id: str, cache_key: str) -> dict[str, Any]:
        """Context slice for drafting, from deep results when present, else quick.

        Raises:
            NotFoundError: If neither phase has a live row for the key.
        """
        _require_tenant(tenant_id)
        if not is_valid_cache_key(cache_key):
            raise RequestValidationError("cache_key must be 64 lowercase hex characters")
        now = self._clock()
        for phase in (PHASE_DEEP, PHASE_QUICK):
            entry = await self._cache.get(tenant_id, cache_key, phase, now=now)
            if entry is not None:
                return build_market_context(entry.results or {})
        raise NotFoundError(f"No market insights cached for {cache_key}")

    # --- Competitor listings ---

    async def competitor_listings(self, tenant_id: str, payload: Any) -> ListingsResponse:
        _require_tenant(tenant_id)
        result = await self._listings.run(tenant_id, payload)
        return ListingsResponse(
            listings=result.listings,
            cached=result.cached,
            cache_key=result.cache_key,
            generated_at=result.generated_at,
        )

    # --- Lifecycle / health ---

    def call_stats(self) -> CallStats:
        return self._call_logger.stats()

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for background deep jobs. Hosts call this before exit."""
        return await self._runner.drain(timeout)

    async def close(self) -> None:
        await self._runner.drain(self._settings.deep_time_budget_s)
        await self._cache.close()
        if self._link_checker is not None:
            await self._link_checker.close()


def _require_tenant(tenant_id: str) -> None:
    if not tenant_id or not tenant_id.strip():
        raise RequestValidationError(
            "tenant_id is required",
            issues=[{"message": "missing tenant", "path": ["tenant_id"]}],
        )
