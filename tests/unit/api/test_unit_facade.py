# tests/unit/api/test_unit_facade.py — v3
"""Tests for api/facade.py — ResearchService wiring and validation."""

from __future__ import annotations

import pytest

from researchcache.api.facade import ResearchService
from researchcache.api.models import DeepAcceptedResponse, PollResponse, QuickResponse
from researchcache.core.errors import NotFoundError, RequestValidationError
from researchcache.search.base_search_client import SearchResult
from researchcache.search.link_checker import LinkChecker
from researchcache.search.tavily_client import TavilySearchClient


class TestMarketInsights:
    @pytest.mark.asyncio
    async def test_quick_response(self, service, dublin_request):
        response = await service.market_insights("org-1", dublin_request)
        assert isinstance(response, QuickResponse)
        assert response.cached is False
        assert response.deep_research_available is False
        assert response.metadata["prompt_version"] == "1.0.0"
        assert len(response.cache_key) == 64

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tenant", ["", "   "])
    async def test_tenant_required(self, service, dublin_request, tenant):
        with pytest.raises(RequestValidationError, match="tenant_id"):
            await service.market_insights(tenant, dublin_request)

    @pytest.mark.asyncio
    async def test_uses_configured_ladder(self, service, fake_provider, dublin_request):
        fake_provider.script("fake:small", "garbage")
        response = await service.market_insights("org-1", dublin_request)
        assert response.metadata["model_used"] == "large"
        assert service.call_stats().escalations == 1


class TestDeepResearch:
    @pytest.mark.asyncio
    async def test_trigger_and_poll(self, service, dublin_request):
        quick = await service.market_insights("org-1", dublin_request)
        accepted = await service.trigger_deep_research("org-1", {"cache_key": quick.cache_key})
        assert isinstance(accepted, DeepAcceptedResponse)
        assert accepted.status == "accepted"

        assert await service.drain(2.0) is True
        poll = await service.poll_deep_research("org-1", quick.cache_key)
        assert isinstance(poll, PollResponse)
        assert poll.status == "complete"
        assert len(poll.sources) == 2

    @pytest.mark.asyncio
    async def test_trigger_rejects_unknown_fields(self, service):
        with pytest.raises(RequestValidationError) as exc_info:
            await service.trigger_deep_research("org-1", {"cache_key": "a" * 64, "force": True})
        assert exc_info.value.issues[0]["path"] == ["force"]

    @pytest.mark.asyncio
    async def test_trigger_requires_key(self, service):
        with pytest.raises(RequestValidationError):
            await service.trigger_deep_research("org-1", {})

    @pytest.mark.asyncio
    async def test_poll_pending(self, service):
        poll = await service.poll_deep_research("org-1", "a" * 64)
        assert poll.status == "pending"
        assert poll.data is None


class TestMarketContext:
    @pytest.mark.asyncio
    async def test_prefers_deep(self, service, dublin_request):
        quick = await service.market_insights("org-1", dublin_request)
        before = await service.market_context("org-1", quick.cache_key)
        assert before["salary_range"]["min"] == 75000

        await service.trigger_deep_research("org-1", {"cache_key": quick.cache_key})
        await service.drain(2.0)
        after = await service.market_context("org-1", quick.cache_key)
        assert after["salary_range"]["min"] == 80000

    @pytest.mark.asyncio
    async def test_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.market_context("org-1", "a" * 64)

    @pytest.mark.asyncio
    async def test_bad_key(self, service):
        with pytest.raises(RequestValidationError):
            await service.market_context("org-1", "listings-abc")


class TestListings:
    @pytest.mark.asyncio
    async def test_listings_response(self, service, fake_search, dublin_request):
        fake_search.responses = [[SearchResult(url="https://www.indeed.com/a", title="Engineer at Stripe", score=0.5)]]
        response = await service.competitor_listings("org-1", dublin_request)
        assert response.cached is False
        assert response.listings[0]["company"] == "Stripe"
        again = await service.competitor_listings("org-1", dublin_request)
        assert again.cached is True


class TestLifecycle:
    def test_default_search_client_is_tavily(self, test_settings, memory_cache, fake_provider):
        service = ResearchService(test_settings, cache=memory_cache, client_provider=fake_provider)
        assert isinstance(service._listings._search, TavilySearchClient)

    def test_link_checker_follows_settings(self, test_settings, memory_cache, fake_provider, fake_search):
        assert ResearchService(
            test_settings, cache=memory_cache, client_provider=fake_provider, search_client=fake_search,
        )._listings._link_checker is None

        enabled = test_settings.model_copy(update={"listings_check_links": True})
        service = ResearchService(
            enabled, cache=memory_cache, client_provider=fake_provider, search_client=fake_search,
        )
        assert isinstance(service._listings._link_checker, LinkChecker)

    def test_from_settings(self, test_settings, memory_cache, fake_provider, fake_search):
        service = ResearchService.from_settings(
            test_settings, cache=memory_cache, client_provider=fake_provider, search_client=fake_search,
        )
        assert service.cache is memory_cache
        assert service.runner.pending == 0

    @pytest.mark.asyncio
    async def test_close_drains(self, service, dublin_request):
        quick = await service.market_insights("org-1", dublin_request)
        await service.trigger_deep_research("org-1", {"cache_key": quick.cache_key})
        await service.close()
        assert service.runner.pending == 0
        assert service.runner.completed == 1
