# src/llm/base_client.py — v3
"""Abstract LLM client interface.

Adapters raise the classified errors from core.errors (rate limit, timeout,
upstream, configuration) instead of SDK-specific exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from researchcache.core.errors import (
    GenerationError,
    ProviderConfigurationError,
    ProviderTimeoutError,
    ProviderUpstreamError,
)
from researchcache.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Text completion, optionally constrained to a JSON schema."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name this client calls."""


# Request faults that fail the same way on every attempt.
CONFIGURATION_STATUS_CODES = frozenset({400, 401, 403, 404})


def status_error(status_code: int, message: str) -> GenerationError:
    """Classify an HTTP status answer from a provider API."""
    if status_code == 408:
        return ProviderTimeoutError(f"HTTP 408: {message}")
    if status_code in CONFIGURATION_STATUS_CODES:
        return ProviderConfigurationError(f"HTTP {status_code}: {message}")
    return ProviderUpstreamError(f"HTTP {status_code}: {message}", status_code=status_code)
