# src/core/errors.py — v1
"""Error taxonomy for the research cache and generation pipeline.

Two families matter to callers:
  - Request/cache errors (RequestValidationError, NotFoundError,
    CacheCorruptionError) raised before or around generation.
  - Generation errors raised by the invoker. Transient ones are retried at
    the same ladder tier, schema failures escalate to the next tier, and
    LadderExhaustedError is terminal.
"""

from __future__ import annotations

from typing import Any


class ResearchError(Exception):
    """Base class for every error raised by researchcache."""

    code: str = "RESEARCH_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RequestValidationError(ResearchError):
    """Caller input is malformed (bad payload, bad cache key)."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class NotFoundError(ResearchError):
    """Deep phase requested for a cache key with no live quick-phase entry."""

    code = "NOT_FOUND"


class CacheCorruptionError(ResearchError):
    """Stored search params no longer parse as a valid request. Never repaired."""

    code = "CACHE_CORRUPTION"

    def __init__(self, cache_key: str, issues: list[dict[str, Any]] | None = None) -> None:
        super().__init__(f"Cached search params for {cache_key} failed re-validation")
        self.cache_key = cache_key
        self.issues = issues or []


class SearchError(ResearchError):
    """Web search provider failed or is not configured."""

    code = "SEARCH_ERROR"


# --- Generation ---


class GenerationError(ResearchError):
    """Any failure while producing a generation result."""

    code = "GENERATION_ERROR"


class TransientGenerationError(GenerationError):
    """Provider fault worth retrying at the same tier."""

    code = "TRANSIENT"


class RateLimitError(TransientGenerationError):
    code = "RATE_LIMIT"

    def __init__(self, message: str = "Provider rate limit exceeded", retry_after_s: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_s = retry_after_s


class ProviderTimeoutError(TransientGenerationError):
    code = "TIMEOUT"

    def __init__(self, message: str = "Provider request timed out") -> None:
        super().__init__(message)


class ProviderUpstreamError(TransientGenerationError):
    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SchemaValidationError(GenerationError):
    """Provider answered but the structured output does not fit the schema."""

    code = "SCHEMA_VALIDATION"

    def __init__(
        self,
        message: str = "Provider output failed schema validation",
        issues: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.issues = issues or []


class OutputTruncatedError(SchemaValidationError):
    """Output hit the token ceiling. Same input truncates the same way."""

    code = "OUTPUT_TRUNCATED"

    def __init__(self, max_tokens: int, output_tokens: int) -> None:
        super().__init__(
            f"Output truncated at {output_tokens}/{max_tokens} tokens",
            issues=[{"message": "stop_reason=max_tokens"}],
        )
        self.max_tokens = max_tokens
        self.output_tokens = output_tokens


class ProviderConfigurationError(GenerationError):
    """Missing API key, unknown provider, and similar deterministic faults."""

    code = "CONFIG_ERROR"


class LadderExhaustedError(GenerationError):
    """Every tier of the escalation ladder failed."""

    code = "LADDER_EXHAUSTED"

    def __init__(
        self,
        task: str,
        attempts: list[tuple[str, str]],
        last_error: Exception | None,
    ) -> None:
        tiers = ", ".join(f"{tier}={error}" for tier, error in attempts)
        super().__init__(f"Task '{task}' failed on every tier ({tiers}): {last_error}")
        self.task = task
        self.attempts = attempts
        self.last_error = last_error

    @property
    def last_error_code(self) -> str:
        """Classification of the final failure."""
        if isinstance(self.last_error, ResearchError):
            return self.last_error.code
        return GenerationError.code


def is_transient(error: BaseException) -> bool:
    """True for faults that may succeed on a plain retry."""
    return isinstance(error, TransientGenerationError)
