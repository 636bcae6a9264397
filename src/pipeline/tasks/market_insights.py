# src/pipeline/tasks/market_insights.py — v1
"""Market insights research task.

Quick phase: figures from model knowledge, returned synchronously.
Deep phase: a heavier model refines the quick figures and cites sources;
runs in the background and is served through polling.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from researchcache.config.tasks import PROMPT_VERSIONS, get_task_config
from researchcache.core.models import GenerationRequest, GenerationResult, SourceRef
from researchcache.llm.models import TaskSpec
from researchcache.pipeline.tasks.base import BaseResearchTask

MarketFocus = Literal["irish", "global"]


class MarketInsightsRequest(GenerationRequest):
    """Role/market tuple the insights are generated for."""

    model_config = ConfigDict(str_strip_whitespace=True)

    role: str = Field(min_length=1, max_length=200)
    level: str = Field(min_length=1, max_length=100)
    industry: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=200)
    market_focus: MarketFocus = "irish"


# === Output schemas ===


class SalaryBand(BaseModel):
    min: float
    max: float
    median: float
    currency: str
    confidence: float = Field(ge=0.0, le=1.0)


class Competition(BaseModel):
    companies_hiring: list[str]
    job_postings_count: int
    market_saturation: Literal["low", "medium", "high"]


class DayRange(BaseModel):
    min: float
    max: float


class TimeToHire(BaseModel):
    average_days: float
    range: DayRange


class CandidateAvailability(BaseModel):
    level: Literal["scarce", "limited", "moderate", "abundant"]
    description: str


class KeySkills(BaseModel):
    required: list[str]
    emerging: list[str]
    declining: list[str]


class QuickMarketInsights(BaseModel):
    """Quick-phase output. No sources: figures come from model knowledge."""

    phase: Literal["quick"] = "quick"
    salary: SalaryBand
    competition: Competition
    time_to_hire: TimeToHire
    candidate_availability: CandidateAvailability
    key_skills: KeySkills
    trends: list[str]


class DeepMarketInsights(BaseModel):
    """Deep-phase output with cited sources and an overall confidence."""

    phase: Literal["deep"] = "deep"
    salary: SalaryBand
    competition: Competition
    time_to_hire: TimeToHire
    candidate_availability: CandidateAvailability
    key_skills: KeySkills
    trends: list[str]
    sources: list[SourceRef] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


# === Prompts ===

_QUICK_SYSTEM = (
    "You are a recruitment market analyst. Answer only with JSON matching "
    "the provided schema. Give realistic figures for the stated market and "
    "say so through lower confidence when data is thin."
)

_DEEP_SYSTEM = (
    "You are a senior recruitment market researcher. Cross-check the "
    "preliminary figures against published salary surveys, job boards and "
    "industry reports. Cite every source you rely on. Answer only with JSON "
    "matching the provided schema."
)


def _describe(request: MarketInsightsRequest) -> str:
    scope = "the Irish market" if request.market_focus == "irish" else "the global market"
    return (
        f"Role: {request.role}\n"
        f"Level: {request.level}\n"
        f"Industry: {request.industry}\n"
        f"Location: {request.location}\n"
        f"Focus: {scope}"
    )


class MarketInsightsTask(BaseResearchTask):
    """Salary, competition and skills research for a hiring plan."""

    name = "market_insights"
    request_model = MarketInsightsRequest

    def __init__(self, market_focus_default: MarketFocus = "irish") -> None:
        self._market_focus_default = market_focus_default

    def parse_request(self, payload: Any) -> GenerationRequest:
        if isinstance(payload, Mapping) and payload.get("market_focus") is None:
            payload = {**payload, "market_focus": self._market_focus_default}
        return super().parse_request(payload)

    def quick_spec(self, request: GenerationRequest) -> TaskSpec:
        config = get_task_config(self.name, "quick")
        return TaskSpec(
            name=f"{self.name}.quick",
            output_schema=QuickMarketInsights,
            prompt=(
                "Produce hiring market insights for:\n"
                f"{_describe(request)}\n"
                "Include salary band, competition, time to hire, candidate "
                "availability, key skills and current trends."
            ),
            system_prompt=_QUICK_SYSTEM,
            prompt_version=PROMPT_VERSIONS[self.name],
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    def deep_spec(self, request: GenerationRequest, quick_results: Any) -> TaskSpec:
        config = get_task_config(self.name, "deep")
        preliminary = json.dumps(quick_results, indent=2, default=str)
        return TaskSpec(
            name=f"{self.name}.deep",
            output_schema=DeepMarketInsights,
            prompt=(
                "Research the hiring market for:\n"
                f"{_describe(request)}\n\n"
                "Preliminary figures to verify and refine:\n"
                f"{preliminary}\n\n"
                "Return refined figures, the sources used (url, title, "
                "relevance_score 0-1, published_date if known) and an overall "
                "confidence between 0 and 1."
            ),
            system_prompt=_DEEP_SYSTEM,
            prompt_version=PROMPT_VERSIONS[self.name],
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    def finalize_deep(
        self, request: GenerationRequest, result: GenerationResult
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        data = dict(result.data)
        sources = list(data.get("sources") or [])
        data["metadata"] = {
            "model_used": result.metadata.model_used,
            "prompt_version": result.metadata.prompt_version,
            "generated_at": result.metadata.generated_at.isoformat(),
            "source_count": len(sources),
            "confidence": data.pop("confidence", 0.5),
        }
        return data, sources


def build_market_context(insights: Mapping[str, Any]) -> dict[str, Any]:
    """Small context slice consumed by downstream drafting tasks."""
    salary = insights.get("salary") or {}
    skills = insights.get("key_skills") or {}
    availability = insights.get("candidate_availability") or {}
    competition = insights.get("competition") or {}
    context: dict[str, Any] = {
        "key_skills": list(skills.get("required") or [])[:10],
        "demand_level": availability.get("level"),
        "competitors": list(competition.get("companies_hiring") or [])[:5],
    }
    if salary:
        context["salary_range"] = {
            "min": salary.get("min"),
            "max": salary.get("max"),
            "currency": salary.get("currency"),
        }
    return context
