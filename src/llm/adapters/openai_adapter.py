# src/llm/adapters/openai_adapter.py — v2
"""OpenAI GPT adapter implementing BaseLLMClient.

Uses the official openai SDK with json_schema response formats.
"""

from __future__ import annotations

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


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(self, model: str = "gpt-4o", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        if not self._api_key:
            raise ProviderConfigurationError("OPENAI_API_KEY is not set")
        import openai

        client = openai.AsyncOpenAI(api_key=self._api_key)
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_format.__name__,
                    "schema": response_format.model_json_schema(),
                },
            }

        t0 = time.monotonic()
        try:
            resp = await client.chat.completions.create(**kwargs)
        except GenerationError:
            raise
        except Exception as e:
            raise _translate_error(e) from e
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            stop_reason=choice.finish_reason or "unknown",
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model


def _translate_error(error: Exception) -> GenerationError:
    """Map openai SDK exceptions onto the classified error taxonomy."""
    import openai

    if isinstance(error, openai.RateLimitError):
        return RateLimitError(str(error))
    if isinstance(error, openai.APITimeoutError):
        return ProviderTimeoutError(str(error))
    if isinstance(error, openai.APIConnectionError):
        return ProviderUpstreamError(str(error))
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderConfigurationError(str(error))
    if isinstance(error, openai.APIStatusError):
        return status_error(error.status_code, str(error))
    return ProviderUpstreamError(str(error))
