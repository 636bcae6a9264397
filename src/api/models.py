# src/api/models.py — v2
"""API-level models: request payloads and response bodies of ResearchService."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class DeepTriggerRequest(BaseModel):
    """Deep-phase trigger payload."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    cache_key: str = Field(min_length=1)
    subject_id: str | None = None


class QuickResponse(BaseModel):
    """Quick-phase result, fresh or cached."""

    data: Any
    cached: bool
    cache_key: str
    deep_research_available: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeepAcceptedResponse(BaseModel):
    """Acknowledgement only; the result is fetched by polling."""

    status: Literal["accepted"] = "accepted"
    cache_key: str
    accepted_at: datetime


class PollResponse(BaseModel):
    status: Literal["pending", "complete"]
    cache_key: str
    data: Any = None
    sources: list[dict[str, Any]] = Field(default_factory=list)


class ListingsResponse(BaseModel):
    listings: list[dict[str, Any]]
    cached: bool
    cache_key: str
    generated_at: str
