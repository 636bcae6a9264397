# tests/integration/pipeline/test_int_listings_flow.py — v1
"""Competitor listings through the service over a JSON file cache."""

from __future__ import annotations

import pytest

from researchcache.api.facade import ResearchService
from researchcache.cache.json_store import JsonPhaseCache
from researchcache.search.base_search_client import SearchResult


@pytest.fixture
def json_service(test_settings, tmp_path, fake_provider, fake_search, clock, no_sleep):
    return ResearchService(
        test_settings,
        cache=JsonPhaseCache(tmp_path / "cache"),
        client_provider=fake_provider,
        search_client=fake_search,
        clock=clock,
        sleep=no_sleep,
    )


class TestListingsFlow:
    @pytest.mark.asyncio
    async def test_listings_and_insights_coexist(self, json_service, fake_search, fake_provider, dublin_request):
        fake_search.responses = [[
            SearchResult(url="https://www.indeed.com/viewjob?jk=9",
                         title="Senior Software Engineer at Stripe - Dublin",
                         content="## About\nJoin **Stripe** in Dublin.", score=0.8),
        ]]
        listings = await json_service.competitor_listings("org-1", dublin_request)
        insights = await json_service.market_insights("org-1", dublin_request)

        assert listings.cache_key != insights.cache_key
        assert listings.listings[0]["source"] == "indeed.com"
        assert listings.listings[0]["snippet"] == "About\nJoin Stripe in Dublin."
        assert insights.cached is False

        again = await json_service.competitor_listings("org-1", dublin_request)
        assert again.cached is True
        assert again.listings == listings.listings
        assert len(fake_search.queries) == 3
        assert fake_provider.total_calls == 1
