# src/llm/adapters/anthropic_adapter.py — v3
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK. Structured outputs go through a forced
tool call whose input_schema is the task's JSON schema. SDK exceptions are
translated into the classified errors of core.errors.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import BaseModel

from researchcache.core.errors import (
    GenerationError,
    ProviderConfigurationError,
    ProviderTimeoutError,
    ProviderUpstreamError,
    RateLimitError,
)
from researchcache.llm.base_client import BaseLLMClient, status_error
from researchcache.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        api_key: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            if not self._api_key:
                raise ProviderConfigurationError("ANTHROPIC_API_KEY is not set")
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system:
            kwargs["system"] = system

        if response_format is not None:
            kwargs["tools"] = [
                {
                    "name": "structured_output",
                    "description": "Return structured data matching the schema",
                    "input_schema": response_format.model_json_schema(),
                }
            ]
            kwargs["tool_choice"] = {"type": "tool", "name": "structured_output"}

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**kwargs)
        except GenerationError:
            raise
        except Exception as e:
            raise _translate_error(e) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=_extract_content(response, response_format is not None),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            stop_reason=response.stop_reason or "unknown",
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model


def _extract_content(response: Any, structured: bool) -> str:
    """Extract text (or forced tool input) from response content blocks."""
    for block in response.content:
        if structured and getattr(block, "type", None) == "tool_use":
            return json.dumps(block.input)
        if getattr(block, "type", None) == "text":
            return block.text
    return ""


def _translate_error(error: Exception) -> GenerationError:
    """Map anthropic SDK exceptions onto the classified error taxonomy."""
    import anthropic

    if isinstance(error, anthropic.RateLimitError):
        return RateLimitError(str(error), retry_after_s=_retry_after(error))
    if isinstance(error, anthropic.APITimeoutError):
        return ProviderTimeoutError(str(error))
    if isinstance(error, anthropic.APIConnectionError):
        return ProviderUpstreamError(str(error))
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ProviderConfigurationError(str(error))
    if isinstance(error, anthropic.APIStatusError):
        return status_error(error.status_code, str(error))
    return ProviderUpstreamError(str(error))


def _retry_after(error: Any) -> float | None:
    response = getattr(error, "response", None)
    value = response.headers.get("retry-after") if response is not None else None
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None
