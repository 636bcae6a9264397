# src/config/tasks.py — v1
"""Declarative generation task configuration.

Sampling parameters and prompt versions per task and phase. Prompt
versions are stored on every cache entry so a prompt change can be told
apart from a model change when inspecting cached results.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TaskGenerationConfig:
    """Sampling parameters for one task phase."""

    temperature: float
    max_tokens: int


TASK_CONFIGS: dict[str, TaskGenerationConfig] = {
    "market_insights.quick": TaskGenerationConfig(temperature=0.3, max_tokens=8192),
    "market_insights.deep": TaskGenerationConfig(temperature=0.3, max_tokens=16384),
}

PROMPT_VERSIONS: dict[str, str] = {
    "market_insights": "1.0.0",
    "competitor_listings": "1.0.0",
}


def get_task_config(task: str, phase: str) -> TaskGenerationConfig:
    """Return sampling config for task.phase.

    Raises:
        KeyError: If the task phase is not registered.
    """
    return TASK_CONFIGS[f"{task}.{phase}"]
