# src/search/base_search_client.py — v1
"""Abstract web search client.

search_parallel() fans queries out concurrently. A failed query is dropped
and logged; results are de-duplicated by URL in first-seen order. Only
when every query fails is an error raised.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from researchcache.core.errors import SearchError

logger = logging.getLogger(__name__)


class SearchResult(BaseModel):
    """One normalized web search hit."""

    url: str
    title: str = ""
    content: str = ""
    score: float = Field(default=0.0, ge=0.0)
    published_date: str | None = None


class BaseSearchClient(ABC):
    """Unified interface for web search providers."""

    @abstractmethod
    async def search(self, query: str, max_results: int = 8) -> list[SearchResult]:
        """Run one query.

        Raises:
            SearchError: If the provider call fails.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (e.g. 'tavily')."""

    async def search_parallel(
        self, queries: list[str], max_results: int = 8
    ) -> list[SearchResult]:
        outcomes = await asyncio.gather(
            *(self.search(q, max_results=max_results) for q in queries),
            return_exceptions=True,
        )
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if queries and len(failures) == len(queries):
            raise SearchError(f"All {len(queries)} search queries failed: {failures[0]}")

        seen: set[str] = set()
        merged: list[SearchResult] = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Search query dropped (%s): %s", type(outcome).__name__, query)
                continue
            for item in outcome:
                if item.url in seen:
                    continue
                seen.add(item.url)
                merged.append(item)
        return merged
