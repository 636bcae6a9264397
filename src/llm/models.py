# src/llm/models.py — v2
"""LLM-specific types: Message, LLMResponse, TaskSpec."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    latency_ms: int
    stop_reason: str = "end_turn"
    raw_response: Any = None

    @property
    def truncated(self) -> bool:
        """True when the provider stopped at the token ceiling."""
        return self.stop_reason in ("max_tokens", "length")


@dataclass(frozen=True)
class TaskSpec:
    """Everything one invocation needs apart from the model tier."""

    name: str
    output_schema: type[BaseModel]
    prompt: str
    prompt_version: str
    system_prompt: str | None = None
    temperature: float = 0.3
    max_tokens: int = 8192

    @property
    def messages(self) -> list[Message]:
        return [Message(role="user", content=self.prompt)]
