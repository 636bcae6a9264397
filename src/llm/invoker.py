# src/llm/invoker.py — v1
"""GenerationInvoker: one generation call walked up an escalation ladder.

Two independent recovery axes:
  - transient faults (rate limit, timeout, upstream 5xx) are retried at the
    SAME tier with exponential backoff, up to that tier's attempt budget;
  - schema failures (the provider answered but the structured output does
    not fit) are never retried at the same tier; the next tier is tried.

A tier whose transient budget runs out also hands over to the next tier.
Configuration faults stop the ladder immediately. When no tier is left,
LadderExhaustedError is raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from researchcache.config.settings import Settings
from researchcache.core.errors import (
    GenerationError,
    LadderExhaustedError,
    OutputTruncatedError,
    ProviderConfigurationError,
    ProviderTimeoutError,
    SchemaValidationError,
    TransientGenerationError,
)
from researchcache.core.models import GenerationMetadata, GenerationResult, utc_now
from researchcache.llm.base_client import BaseLLMClient
from researchcache.llm.ladder import EscalationLadder, ModelTier
from researchcache.llm.models import LLMResponse, TaskSpec
from researchcache.llm.retry import SleepFn, classify_error, with_retry
from researchcache.llm.structured import parse_structured_output
from researchcache.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

ClientProvider = Callable[[ModelTier], BaseLLMClient]


def settings_client_provider(settings: Settings) -> ClientProvider:
    """Build a ClientProvider that creates (and reuses) adapters from settings."""
    from researchcache.llm.client_factory import create_llm_client

    clients: dict[str, BaseLLMClient] = {}

    def provide(tier: ModelTier) -> BaseLLMClient:
        if tier.key not in clients:
            clients[tier.key] = create_llm_client(tier.provider, tier.model, settings)
        return clients[tier.key]

    return provide


class GenerationInvoker:
    """Calls an external provider with retry and model-tier escalation."""

    def __init__(
        self,
        client_provider: ClientProvider,
        call_logger: CallLogger | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client_provider = client_provider
        self._call_logger = call_logger or CallLogger()
        self._sleep = sleep

    @property
    def call_logger(self) -> CallLogger:
        return self._call_logger

    async def invoke(self, task: TaskSpec, ladder: EscalationLadder) -> GenerationResult:
        """Produce a schema-validated result for `task`.

        Raises:
            ProviderConfigurationError: On deterministic setup faults.
            LadderExhaustedError: When every tier has failed.
        """
        attempts: list[tuple[str, str]] = []
        last_error: GenerationError | None = None

        for index, tier in enumerate(ladder):
            is_last = index == len(ladder) - 1
            try:
                return await self._invoke_tier(task, ladder, index, tier, is_last)
            except ProviderConfigurationError:
                raise
            except (SchemaValidationError, TransientGenerationError) as e:
                attempts.append((tier.key, e.code))
                last_error = e
                if not is_last:
                    logger.warning(
                        "Task '%s' escalating from %s to %s after %s",
                        task.name, tier.key, ladder.tiers[index + 1].key, e.code,
                    )

        logger.error(
            "Task '%s' exhausted ladder '%s' (%s)",
            task.name, ladder.name, ", ".join(ladder.keys),
        )
        raise LadderExhaustedError(task.name, attempts, last_error) from last_error

    async def _invoke_tier(
        self,
        task: TaskSpec,
        ladder: EscalationLadder,
        index: int,
        tier: ModelTier,
        is_last: bool,
    ) -> GenerationResult:
        client = self._client_provider(tier)
        attempt = 0

        async def call_once() -> GenerationResult:
            nonlocal attempt
            attempt += 1
            start = time.monotonic()
            response: LLMResponse | None = None
            try:
                response = await asyncio.wait_for(
                    client.complete(
                        task.messages,
                        system=task.system_prompt,
                        max_tokens=task.max_tokens,
                        temperature=task.temperature,
                        response_format=task.output_schema,
                    ),
                    timeout=tier.timeout_s,
                )
                if response.truncated:
                    raise OutputTruncatedError(task.max_tokens, response.output_tokens)
                parsed, coerced = parse_structured_output(response.content, task.output_schema)
            except asyncio.TimeoutError as e:
                error = ProviderTimeoutError(f"{tier.key} exceeded {tier.timeout_s}s")
                self._record_failure(task, ladder, index, tier, attempt, error, response, start, is_last)
                raise error from e
            except GenerationError as e:
                self._record_failure(task, ladder, index, tier, attempt, e, response, start, is_last)
                raise
            except Exception as e:
                error = classify_error(e)
                self._record_failure(task, ladder, index, tier, attempt, error, response, start, is_last)
                raise error from e

            self._call_logger.record(
                task=task.name, ladder=ladder.name, tier_index=index, tier=tier,
                attempt=attempt, status="success", response=response, coerced=coerced,
            )
            logger.info(
                "Task '%s' succeeded on %s (attempt %d, %dms)",
                task.name, tier.key, attempt, response.latency_ms,
            )
            return GenerationResult(
                data=parsed.model_dump(mode="json"),
                metadata=GenerationMetadata(
                    model_used=response.model or tier.model,
                    prompt_version=task.prompt_version,
                    generated_at=utc_now(),
                ),
            )

        return await with_retry(
            call_once,
            tier.retry,
            label=f"Task '{task.name}' on {tier.key}",
            sleep=self._sleep,
        )

    def _record_failure(
        self,
        task: TaskSpec,
        ladder: EscalationLadder,
        index: int,
        tier: ModelTier,
        attempt: int,
        error: GenerationError,
        response: LLMResponse | None,
        start: float,
        is_last: bool,
    ) -> None:
        if isinstance(error, TransientGenerationError) and attempt < tier.retry.max_attempts:
            status = "retry"
        elif isinstance(error, ProviderConfigurationError) or is_last:
            status = "failed"
        else:
            status = "escalated"
        self._call_logger.record(
            task=task.name, ladder=ladder.name, tier_index=index, tier=tier,
            attempt=attempt, status=status, response=response, error=error,
            latency_ms=int((time.monotonic() - start) * 1000),
        )
