# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides scripted LLM clients, a fake search client, a frozen clock, a
recording sleep and an in-memory service. No network access: every
provider is faked.
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from pydantic import BaseModel

from researchcache.cache.memory_store import MemoryPhaseCache
from researchcache.config.settings import Settings, load_settings
from researchcache.llm.base_client import BaseLLMClient
from researchcache.llm.ladder import EscalationLadder, ModelTier
from researchcache.llm.models import LLMResponse, Message
from researchcache.llm.retry import RetryConfig
from researchcache.search.base_search_client import BaseSearchClient, SearchResult


# === Sample payloads ===

DUBLIN_REQUEST: dict[str, str] = {
    "role": "Software Engineer",
    "level": "Senior",
    "industry": "Technology",
    "location": "Dublin",
}

QUICK_INSIGHTS: dict[str, Any] = {
    "phase": "quick",
    "salary": {
        "min": 75000,
        "max": 110000,
        "median": 92000,
        "currency": "EUR",
        "confidence": 0.7,
    },
    "competition": {
        "companies_hiring": ["Stripe", "Intercom", "Workday", "Google", "Meta", "HubSpot"],
        "job_postings_count": 420,
        "market_saturation": "medium",
    },
    "time_to_hire": {"average_days": 38, "range": {"min": 25, "max": 60}},
    "candidate_availability": {
        "level": "limited",
        "description": "Senior engineers are in demand across Dublin tech firms.",
    },
    "key_skills": {
        "required": ["Python", "Go", "AWS", "Kubernetes", "System design"],
        "emerging": ["LLM integration"],
        "declining": ["jQuery"],
    },
    "trends": ["Hybrid work is the norm", "AI tooling adoption"],
}

DEEP_INSIGHTS: dict[str, Any] = {
    **copy.deepcopy(QUICK_INSIGHTS),
    "phase": "deep",
    "salary": {
        "min": 80000,
        "max": 115000,
        "median": 95000,
        "currency": "EUR",
        "confidence": 0.85,
    },
    "sources": [
        {
            "url": "https://www.morganmckinley.com/ie/salary-guide",
            "title": "Ireland Salary Guide",
            "relevance_score": 0.9,
            "published_date": "2026-01-15",
        },
        {
            "url": "https://www.cso.ie/en/statistics/earnings",
            "title": "CSO Earnings",
            "relevance_score": 0.6,
        },
    ],
    "confidence": 0.8,
}


@pytest.fixture
def dublin_request() -> dict[str, str]:
    return dict(DUBLIN_REQUEST)


@pytest.fixture
def quick_insights() -> dict[str, Any]:
    return copy.deepcopy(QUICK_INSIGHTS)


@pytest.fixture
def deep_insights() -> dict[str, Any]:
    return copy.deepcopy(DEEP_INSIGHTS)


# === Fake LLM clients ===


def make_response(
    content: str | dict[str, Any],
    model: str = "fake-model",
    stop_reason: str = "end_turn",
) -> LLMResponse:
    """Build an LLMResponse; dict content is serialized to JSON."""
    text = content if isinstance(content, str) else json.dumps(content)
    return LLMResponse(
        content=text,
        input_tokens=120,
        output_tokens=340,
        model=model,
        provider="fake",
        latency_ms=15,
        stop_reason=stop_reason,
    )


class ScriptedLLMClient(BaseLLMClient):
    """Replays scripted outcomes, then falls back to a valid payload.

    An outcome is an exception (raised), a string or dict (returned as
    content) or an LLMResponse (returned as-is). The fallback payload is
    chosen from the requested response_format.
    """

    def __init__(self, model: str = "fake-model", outcomes: list[Any] | None = None) -> None:
        self._model = model
        self.outcomes: list[Any] = list(outcomes or [])
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "response_format": response_format,
        })
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(outcome, LLMResponse):
                return outcome
            return make_response(outcome, model=self._model)
        schema_name = response_format.__name__ if response_format else ""
        payload = DEEP_INSIGHTS if schema_name.startswith("Deep") else QUICK_INSIGHTS
        return make_response(payload, model=self._model)

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return self._model


class FakeClientProvider:
    """ClientProvider handing out one ScriptedLLMClient per tier key."""

    def __init__(self) -> None:
        self.clients: dict[str, ScriptedLLMClient] = {}

    def script(self, tier_key: str, *outcomes: Any) -> ScriptedLLMClient:
        client = self._get(tier_key)
        client.outcomes.extend(outcomes)
        return client

    def __call__(self, tier: ModelTier) -> BaseLLMClient:
        return self._get(tier.key)

    def _get(self, tier_key: str) -> ScriptedLLMClient:
        if tier_key not in self.clients:
            self.clients[tier_key] = ScriptedLLMClient(model=tier_key.split(":", 1)[-1])
        return self.clients[tier_key]

    @property
    def total_calls(self) -> int:
        return sum(len(c.calls) for c in self.clients.values())

    def calls_for(self, tier_key: str) -> int:
        client = self.clients.get(tier_key)
        return len(client.calls) if client else 0


@pytest.fixture
def fake_provider() -> FakeClientProvider:
    return FakeClientProvider()


class RecordingSleep:
    """Async sleep replacement that records delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


# === Ladders ===


FAST_RETRY = RetryConfig(max_attempts=3, base_delay_s=0.01, max_delay_s=0.05, jitter=False)


@pytest.fixture
def two_tier_ladder() -> EscalationLadder:
    return EscalationLadder(
        name="quick",
        tiers=(
            ModelTier("fake", "small", retry=FAST_RETRY, timeout_s=5.0),
            ModelTier("fake", "large", retry=FAST_RETRY, timeout_s=5.0),
        ),
    )


@pytest.fixture
def one_tier_ladder() -> EscalationLadder:
    return EscalationLadder(
        name="deep",
        tiers=(ModelTier("fake", "large", retry=FAST_RETRY, timeout_s=5.0),),
    )


# === Clock ===


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc))


# === Search ===


class FakeSearchClient(BaseSearchClient):
    """Returns canned results per query index; exceptions are raised."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses = list(responses or [])
        self.queries: list[str] = []

    async def search(self, query: str, max_results: int = 8) -> list[SearchResult]:
        index = len(self.queries)
        self.queries.append(query)
        outcome = self.responses[index] if index < len(self.responses) else []
        if isinstance(outcome, BaseException):
            raise outcome
        return list(outcome)

    @property
    def provider_name(self) -> str:
        return "fake"


@pytest.fixture
def fake_search() -> FakeSearchClient:
    return FakeSearchClient()


# === Stores, settings, service ===


@pytest.fixture
def memory_cache() -> MemoryPhaseCache:
    return MemoryPhaseCache()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from any local .env file."""
    return load_settings(
        _env_file=None,
        cache_backend="memory",
        cache_root=tmp_path / "cache",
        llm_quick_ladder="fake:small,fake:large",
        llm_deep_ladder="fake:large",
        llm_retry_jitter=False,
        llm_retry_base_delay_s=0.01,
        llm_quick_timeout_s=5.0,
        llm_deep_timeout_s=5.0,
        deep_time_budget_s=20.0,
        listings_check_links=False,
    )


@pytest.fixture
def service(test_settings, memory_cache, fake_provider, fake_search, clock, no_sleep):
    from researchcache.api.facade import ResearchService

    return ResearchService(
        test_settings,
        cache=memory_cache,
        client_provider=fake_provider,
        search_client=fake_search,
        clock=clock,
        sleep=no_sleep,
    )


@pytest.fixture
def tmp_cache_dir(tmp_path):
    """Temporary cache directory."""
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    return cache_dir


@pytest.fixture
def llm_response():
    """Factory for LLMResponse objects (dict content is JSON-encoded)."""
    return make_response
