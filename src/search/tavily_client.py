# src/search/tavily_client.py — v1
"""Tavily web search adapter implementing BaseSearchClient.

Uses the official tavily-python SDK (AsyncTavilyClient). Any SDK failure
is wrapped in SearchError.
"""

from __future__ import annotations

import logging
from typing import Any

from researchcache.core.errors import SearchError
from researchcache.search.base_search_client import BaseSearchClient, SearchResult

logger = logging.getLogger(__name__)


class TavilySearchClient(BaseSearchClient):
    """Adapter for the Tavily search API."""

    def __init__(
        self,
        api_key: str | None = None,
        search_depth: str = "advanced",
    ) -> None:
        self._api_key = api_key
        self._search_depth = search_depth
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Tavily client (only on first search)."""
        if self.__client is None:
            if not self._api_key:
                raise SearchError("TAVILY_API_KEY is not set")
            try:
                from tavily import AsyncTavilyClient
            except ImportError as e:
                raise ImportError(
                    "tavily-python package required: pip install tavily-python"
                ) from e
            self.__client = AsyncTavilyClient(api_key=self._api_key)
        return self.__client

    @property
    def provider_name(self) -> str:
        return "tavily"

    async def search(self, query: str, max_results: int = 8) -> list[SearchResult]:
        client = self._client
        try:
            response: dict[str, Any] = await client.search(
                query,
                search_depth=self._search_depth,
                max_results=max_results,
                include_answer=False,
                include_raw_content=False,
            )
        except Exception as e:
            raise SearchError(f"Tavily search failed: {e}") from e

        results = []
        for item in response.get("results") or []:
            if not item.get("url"):
                continue
            results.append(SearchResult(
                url=item["url"],
                title=item.get("title") or "",
                content=item.get("content") or "",
                score=max(float(item.get("score") or 0.0), 0.0),
                published_date=item.get("published_date"),
            ))
        logger.debug("Tavily returned %d result(s) for %r", len(results), query)
        return results
