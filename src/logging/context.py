# src/logging/context.py — v2
"""Contextual logging support — attach tenant_id, cache_key, phase, task to log records.

asyncio tasks copy the current context when they are created, so a deep
job spawned inside a request keeps the request's tenant and key.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per request or background job.
_tenant_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tenant_id", default=None
)
_cache_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_key", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)
_task: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    tenant_id: str | None = None
    cache_key: str | None = None
    phase: str | None = None
    task: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        tenant_id=_tenant_id.get(),
        cache_key=_cache_key.get(),
        phase=_phase.get(),
        task=_task.get(),
    )


def set_request_context(tenant_id: str, cache_key: str | None = None) -> None:
    """Set request-level context (called once per inbound request)."""
    _tenant_id.set(tenant_id)
    _cache_key.set(cache_key)


def set_phase_context(phase: str, task: str | None = None) -> None:
    """Set phase-level context (called per orchestrator run)."""
    _phase.set(phase)
    _task.set(task)


def clear_context() -> None:
    """Reset all context variables."""
    _tenant_id.set(None)
    _cache_key.set(None)
    _phase.set(None)
    _task.set(None)
