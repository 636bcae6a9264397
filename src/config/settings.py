# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Provider API keys ===
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    tavily_api_key: str = ""

    # === Escalation ladders (comma-separated provider:model, cheapest first) ===
    llm_quick_ladder: str = (
        "anthropic:claude-sonnet-4-5-20250929,anthropic:claude-opus-4-6"
    )
    llm_deep_ladder: str = "anthropic:claude-opus-4-6"

    # === Per-tier transient retry ===
    llm_max_attempts_per_tier: int = 3
    llm_retry_base_delay_s: float = 1.0
    llm_retry_backoff_factor: float = 2.0
    llm_retry_max_delay_s: float = 16.0
    llm_retry_jitter: bool = True

    # === Per-call timeouts (one provider call at one tier) ===
    llm_quick_timeout_s: float = 60.0
    llm_deep_timeout_s: float = 240.0

    # === Cache ===
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.researchcache/cache")
    cache_redis_url: str = ""
    cache_ttl_quick_days: int = 30
    cache_ttl_deep_days: int = 30
    cache_ttl_listings_days: int = 7

    # === Deep phase background execution ===
    # Must cover every deep tier running all its attempts to timeout plus backoff.
    deep_time_budget_s: float = 900.0

    # === Market research ===
    market_focus_default: Literal["irish", "global"] = "irish"

    # === Competitor listings ===
    listings_max_results: int = 8
    listings_limit: int = 20
    listings_check_links: bool = True
    listings_link_timeout_s: float = 4.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_ttl_quick_days", "cache_ttl_deep_days", "cache_ttl_listings_days")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """TTLs must be positive whole days."""
        if v <= 0:
            raise ValueError("cache TTL must be > 0 days")
        return v

    @field_validator("llm_max_attempts_per_tier")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("llm_max_attempts_per_tier must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        for name in ("llm_quick_ladder", "llm_deep_ladder"):
            value = getattr(self, name)
            tiers = [t.strip() for t in value.split(",") if t.strip()]
            if not tiers:
                errors.append(f"{name.upper()} must list at least one provider:model")
            elif any(":" not in t or not t.split(":", 1)[1].strip() for t in tiers):
                errors.append(f"{name.upper()} entries must be provider:model")

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        worst_case = self.deep_worst_case_s
        if self.deep_time_budget_s < worst_case:
            errors.append(
                f"DEEP_TIME_BUDGET_S ({self.deep_time_budget_s:g}s) must cover the deep "
                f"ladder worst case ({worst_case:g}s = tiers x attempts x "
                f"LLM_DEEP_TIMEOUT_S + backoff)"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def quick_ladder_list(self) -> list[str]:
        """Parse comma-separated quick ladder."""
        return [t.strip() for t in self.llm_quick_ladder.split(",") if t.strip()]

    @property
    def deep_ladder_list(self) -> list[str]:
        """Parse comma-separated deep ladder."""
        return [t.strip() for t in self.llm_deep_ladder.split(",") if t.strip()]

    @property
    def deep_worst_case_s(self) -> float:
        """Longest a deep invocation can run before the ladder gives up.

        Each tier spends max_attempts timeouts plus the backoff between them,
        with jitter taken at its 1.5x upper bound.
        """
        jitter = 1.5 if self.llm_retry_jitter else 1.0
        backoff = sum(
            min(
                self.llm_retry_base_delay_s * (self.llm_retry_backoff_factor ** i) * jitter,
                self.llm_retry_max_delay_s,
            )
            for i in range(self.llm_max_attempts_per_tier - 1)
        )
        per_tier = self.llm_max_attempts_per_tier * self.llm_deep_timeout_s + backoff
        return len(self.deep_ladder_list) * per_tier


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-tenant config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
