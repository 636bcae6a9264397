# src/llm/retry.py — v3
"""Same-tier retry for transient provider faults, with exponential backoff.

Only transient errors (rate limit, timeout, upstream) are retried here.
Anything else is re-raised on the first occurrence so the invoker can
decide whether to escalate to another tier or give up.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import pydantic

from researchcache.core.errors import (
    GenerationError,
    ProviderTimeoutError,
    ProviderUpstreamError,
    RateLimitError,
    SchemaValidationError,
    is_transient,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryConfig:
    """Transient-retry budget for one ladder tier."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    max_delay_s: float = 16.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")


def classify_error(error: BaseException) -> GenerationError:
    """Return the classified form of an exception.

    Already-classified errors are returned unchanged. Others are matched
    by type and message. Only JSON decode and pydantic validation failures
    count as schema faults; unknown faults count as upstream (transient).
    """
    if isinstance(error, GenerationError):
        return error

    msg = str(error).lower()
    name = type(error).__name__.lower()

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)) or "timeout" in name or "timed out" in msg:
        return ProviderTimeoutError(str(error) or "Provider request timed out")
    if "429" in msg or "rate limit" in msg or "ratelimit" in name:
        return RateLimitError(str(error))
    if isinstance(error, (json.JSONDecodeError, pydantic.ValidationError)):
        return SchemaValidationError(str(error), issues=[{"message": str(error)}])
    status = next((c for c in (500, 502, 503, 504, 529) if str(c) in msg), None)
    return ProviderUpstreamError(str(error) or type(error).__name__, status_code=status)


def compute_delay(config: RetryConfig, attempt: int, retry_after_s: float | None = None) -> float:
    """Compute delay before retry number `attempt` (0-based).

    A provider-supplied retry-after wins over the exponential schedule;
    both are capped at max_delay_s.
    """
    if retry_after_s is not None:
        return min(max(retry_after_s, 0.0), config.max_delay_s)
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig,
    *,
    label: str = "unknown",
    sleep: SleepFn = asyncio.sleep,
    on_retry: Callable[[int, GenerationError, float], None] | None = None,
) -> T:
    """Call fn, retrying transient failures up to config.max_attempts.

    Raises:
        GenerationError: The classified last error, once non-transient or
            once the attempt budget is spent.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as e:
            error = classify_error(e)
            if not is_transient(error) or attempt >= config.max_attempts:
                if error is e:
                    raise
                raise error from e

            retry_after = error.retry_after_s if isinstance(error, RateLimitError) else None
            delay = compute_delay(config, attempt - 1, retry_after)
            logger.warning(
                "%s — %s (attempt %d/%d), retrying in %.1fs",
                label, error.code, attempt, config.max_attempts, delay,
            )
            if on_retry is not None:
                on_retry(attempt, error, delay)
            await sleep(delay)
