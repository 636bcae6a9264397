# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Phases stored under one cache key. "listings" is the competitor-search variant.
CachePhase = Literal["quick", "deep", "listings"]

PHASE_QUICK: CachePhase = "quick"
PHASE_DEEP: CachePhase = "deep"
PHASE_LISTINGS: CachePhase = "listings"


def utc_now() -> datetime:
    """Timezone-aware current time; the default clock everywhere."""
    return datetime.now(timezone.utc)


class GenerationRequest(BaseModel):
    """Semantic input to a generation task.

    Subclasses declare the task-specific fields. The model is frozen so a
    request can never drift after its cache key has been derived.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)


class SourceRef(BaseModel):
    """A cited source attached to deep-phase results."""

    url: str
    title: str
    relevance_score: float = Field(ge=0.0, le=1.0)
    published_date: str | None = None


class GenerationMetadata(BaseModel):
    """Provenance recorded for every successful generation."""

    model_used: str
    prompt_version: str
    generated_at: datetime = Field(default_factory=utc_now)


class GenerationResult(BaseModel):
    """Validated output of one invocation. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    data: dict[str, Any]
    metadata: GenerationMetadata
