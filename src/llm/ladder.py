# src/llm/ladder.py — v1
"""Escalation ladders: ordered model tiers, cheapest first.

Escalation only ever moves forward through a ladder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from researchcache.llm.retry import RetryConfig


@dataclass(frozen=True)
class ModelTier:
    """One rung: a provider model with its own retry budget and call timeout."""

    provider: str
    model: str
    retry: RetryConfig = RetryConfig()
    timeout_s: float = 60.0

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


@dataclass(frozen=True)
class EscalationLadder:
    """Named, non-empty, ordered tuple of tiers."""

    name: str
    tiers: tuple[ModelTier, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError(f"Escalation ladder '{self.name}' has no tiers")

    def __iter__(self) -> Iterator[ModelTier]:
        return iter(self.tiers)

    def __len__(self) -> int:
        return len(self.tiers)

    @property
    def keys(self) -> list[str]:
        return [t.key for t in self.tiers]
