# src/pipeline/listings.py — v2
"""Competitor job listings: cached web search, no model call.

Rows live under the "listings" phase with a namespaced key so they never
collide with market insights for the same role/market tuple.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from researchcache.cache.base_cache_store import BasePhaseCache
from researchcache.cache.cache_key import namespaced_cache_key
from researchcache.cache.models import ResearchCacheEntry
from researchcache.config.tasks import PROMPT_VERSIONS
from researchcache.core.errors import RequestValidationError
from researchcache.core.models import PHASE_LISTINGS, GenerationRequest, utc_now
from researchcache.logging.context import set_phase_context, set_request_context
from researchcache.search.base_search_client import BaseSearchClient, SearchResult
from researchcache.search.link_checker import LinkChecker

logger = logging.getLogger(__name__)

LISTINGS_MODEL = "web-search"
DEFAULT_LISTINGS_TTL = timedelta(days=7)
DEFAULT_MAX_RESULTS = 8
DEFAULT_LIMIT = 20
SNIPPET_LENGTH = 300
JOB_BOARDS = ("indeed.com", "linkedin.com/jobs", "glassdoor.com", "irishjobs.ie")


class ListingsRequest(GenerationRequest):
    model_config = ConfigDict(str_strip_whitespace=True)

    role: str = Field(min_length=1, max_length=200)
    level: str = Field(min_length=1, max_length=200)
    industry: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=200)


class CompetitorListing(BaseModel):
    url: str
    title: str
    company: str
    source: str
    snippet: str
    posted_date: str | None = None
    relevance_score: float


@dataclass
class ListingsResult:
    listings: list[dict[str, Any]]
    cached: bool
    cache_key: str
    generated_at: str = ""


# === Text helpers ===

_MD_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"\*{1,3}(.+?)\*{1,3}"), r"\1"),
    (re.compile(r"_{1,3}(.+?)_{1,3}"), r"\1"),
    (re.compile(r"~~(.+?)~~"), r"\1"),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"^\s*[-*+]\s+", re.MULTILINE), ""),
    (re.compile(r"^\s*\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"^>\s+", re.MULTILINE), ""),
    (re.compile(r"^---+$", re.MULTILINE), ""),
    (re.compile(r"\n{3,}"), "\n\n"),
]

_AT_COMPANY_RE = re.compile(r"\bat\s+(.+?)(?:\s*[-–|]|$)", re.IGNORECASE)
_LEADING_COMPANY_RE = re.compile(r"^(.+?)\s*[-–|]\s+")
_HIRING_RE = re.compile(r"^(.+?)\s+is\s+(?:hiring|looking|seeking)", re.IGNORECASE)
_MAX_COMPANY_LENGTH = 60


def strip_markdown(text: str) -> str:
    """Plain text from markdown-ish search snippets."""
    for pattern, replacement in _MD_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def extract_company(title: str, content: str) -> str:
    """Best guess at the hiring company, or "Unknown".

    Tries "Role at Company", then "Company - Role", then "Company is hiring".
    """
    match = _AT_COMPANY_RE.search(title)
    if match:
        return match.group(1).strip()
    match = _LEADING_COMPANY_RE.search(title)
    if match and len(match.group(1)) < _MAX_COMPANY_LENGTH:
        return match.group(1).strip()
    match = _HIRING_RE.search(content)
    if match and len(match.group(1)) < _MAX_COMPANY_LENGTH:
        return match.group(1).strip()
    return "Unknown"


def extract_source(url: str) -> str:
    """Host name without a leading www., or "unknown"."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    return host[4:] if host.startswith("www.") else host


def build_queries(request: ListingsRequest, year: int) -> list[str]:
    boards = " OR ".join(f"site:{b}" for b in JOB_BOARDS)
    return [
        f'"{request.role}" "{request.level}" job {request.location} {boards}',
        f'"{request.role}" {request.industry} hiring {request.location}',
        f'"{request.role}" vacancy {request.location} {year}',
    ]


def to_listing(result: SearchResult) -> CompetitorListing:
    content = strip_markdown(result.content)
    return CompetitorListing(
        url=result.url,
        title=strip_markdown(result.title),
        company=extract_company(result.title, content),
        source=extract_source(result.url),
        snippet=content[:SNIPPET_LENGTH],
        posted_date=result.published_date,
        relevance_score=result.score,
    )


class ListingsOrchestrator:
    """Cache-first competitor listings search.

    Args:
        cache: Tenant-scoped phase cache.
        search_client: Web search provider.
        ttl: Lifetime of listings rows.
        max_results: Results requested per query.
        limit: Listings kept after ranking.
        link_checker: Drops listings whose URL no longer answers. None
            keeps every ranked listing.
        clock: Current-time source, injectable for tests.
    """

    def __init__(
        self,
        cache: BasePhaseCache,
        search_client: BaseSearchClient,
        ttl: timedelta = DEFAULT_LISTINGS_TTL,
        max_results: int = DEFAULT_MAX_RESULTS,
        limit: int = DEFAULT_LIMIT,
        link_checker: LinkChecker | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache = cache
        self._search = search_client
        self._ttl = ttl
        self._max_results = max_results
        self._limit = limit
        self._link_checker = link_checker
        self._clock = clock

    async def run(self, tenant_id: str, request: Any) -> ListingsResult:
        """Return competitor listings for the role/market tuple.

        Raises:
            RequestValidationError: If the request payload is invalid.
            SearchError: If every search query failed.
        """
        parsed = _parse(request)
        cache_key = namespaced_cache_key(PHASE_LISTINGS, parsed)
        set_request_context(tenant_id, cache_key)
        set_phase_context(PHASE_LISTINGS, "competitor_listings")

        now = self._clock()
        hit = await self._cache.get(tenant_id, cache_key, PHASE_LISTINGS, now=now)
        if hit is not None:
            logger.info("Listings cache hit (%d listing(s))", len(hit.results or []))
            return ListingsResult(
                listings=list(hit.results or []),
                cached=True,
                cache_key=cache_key,
                generated_at=hit.created_at.isoformat(),
            )

        queries = build_queries(parsed, now.year)
        results = await self._search.search_parallel(queries, max_results=self._max_results)
        listings = sorted(
            (to_listing(r) for r in results),
            key=lambda item: item.relevance_score,
            reverse=True,
        )[: self._limit]
        if self._link_checker is not None:
            listings = await self._link_checker.filter_live(listings, lambda item: item.url)
        payload = [item.model_dump(mode="json") for item in listings]
        logger.info("Listings search returned %d result(s), kept %d", len(results), len(payload))

        entry = ResearchCacheEntry(
            tenant_id=tenant_id,
            cache_key=cache_key,
            phase=PHASE_LISTINGS,
            search_params=parsed.model_dump(mode="json"),
            results=payload,
            sources=[],
            model_used=LISTINGS_MODEL,
            prompt_version=PROMPT_VERSIONS["competitor_listings"],
            created_at=now,
            expires_at=now + self._ttl,
        )
        try:
            await self._cache.put(tenant_id, cache_key, PHASE_LISTINGS, entry)
        except Exception as e:
            logger.error("Listings cache write failed: %s: %s", type(e).__name__, e)

        return ListingsResult(
            listings=payload,
            cached=False,
            cache_key=cache_key,
            generated_at=now.isoformat(),
        )


def _parse(request: Any) -> ListingsRequest:
    if isinstance(request, ListingsRequest):
        return request
    try:
        return ListingsRequest.model_validate(request)
    except ValidationError as e:
        raise RequestValidationError(
            "Invalid competitor listings request",
            issues=[
                {"message": err["msg"], "path": [str(p) for p in err["loc"]]}
                for err in e.errors()
            ],
        ) from e
