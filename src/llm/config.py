# src/llm/config.py — v2
"""Ladder resolution from settings.

Each phase has its own ladder, written in settings as a comma-separated
list of provider:model entries, cheapest first. Every tier shares the
per-tier retry knobs; the per-call timeout depends on the phase.
"""

from __future__ import annotations

from researchcache.config.settings import Settings
from researchcache.llm.ladder import EscalationLadder, ModelTier
from researchcache.llm.retry import RetryConfig


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    if not provider.strip() or not model.strip():
        return None
    return (provider.strip(), model.strip())


def retry_config_from_settings(settings: Settings) -> RetryConfig:
    """Per-tier transient retry budget."""
    return RetryConfig(
        max_attempts=settings.llm_max_attempts_per_tier,
        base_delay_s=settings.llm_retry_base_delay_s,
        backoff_factor=settings.llm_retry_backoff_factor,
        max_delay_s=settings.llm_retry_max_delay_s,
        jitter=settings.llm_retry_jitter,
    )


def build_ladder(phase: str, settings: Settings) -> EscalationLadder:
    """Resolve the escalation ladder for a phase ("quick" or "deep").

    Raises:
        ValueError: If the phase is unknown or an entry does not parse.
    """
    if phase == "quick":
        entries, timeout_s = settings.quick_ladder_list, settings.llm_quick_timeout_s
    elif phase == "deep":
        entries, timeout_s = settings.deep_ladder_list, settings.llm_deep_timeout_s
    else:
        raise ValueError(f"No ladder configured for phase {phase!r}")

    retry = retry_config_from_settings(settings)
    tiers: list[ModelTier] = []
    for entry in entries:
        parsed = _parse_assignment(entry)
        if parsed is None:
            raise ValueError(f"Invalid ladder entry {entry!r}; expected provider:model")
        tiers.append(
            ModelTier(provider=parsed[0], model=parsed[1], retry=retry, timeout_s=timeout_s)
        )
    return EscalationLadder(name=phase, tiers=tuple(tiers))
