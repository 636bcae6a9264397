# src/tracking/models.py — v2
"""Tracking domain models: GenerationCallRecord, TaskCallStats, CallStats."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CallStatus = Literal["success", "retry", "escalated", "failed"]


class GenerationCallRecord(BaseModel):
    """One provider attempt at one ladder tier."""

    call_id: str
    timestamp: datetime
    task: str
    ladder: str
    tier_index: int
    provider: str
    model: str
    attempt: int
    status: CallStatus
    error_type: str | None = None
    error_message: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0
    coerced: bool = False


class TaskCallStats(BaseModel):
    """Per-task aggregate over the buffered records."""

    calls: int = 0
    failures: int = 0
    avg_latency_ms: float = 0.0


class CallStats(BaseModel):
    """Summary for health inspection."""

    total_calls: int = 0
    failures: int = 0
    escalations: int = 0
    coercions: int = 0
    avg_latency_ms: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    by_task: dict[str, TaskCallStats] = Field(default_factory=dict)
