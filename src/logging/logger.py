# src/logging/logger.py — v3
"""JSON and text formatters for the researchcache logger tree.

Every line names the tenant, phase and cache key it was emitted under, so
a deep job finishing minutes after its request can still be traced back to
it. Errors from the ResearchError hierarchy also log their stable code.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from researchcache.logging.context import LogContext, get_context
from researchcache.logging.handlers import ContextFilter, create_rotating_handler

_ROOT_LOGGER = "researchcache"
_SHORT_KEY = 12
# Marks handlers installed here so re-configuration leaves foreign ones alone.
_OWNED = "_researchcache_owned"


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _error_code(record: logging.LogRecord) -> str | None:
    if not record.exc_info or record.exc_info[1] is None:
        return None
    return getattr(record.exc_info[1], "code", None)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, context nested under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["error"] = {
                "type": type(record.exc_info[1]).__name__,
                "code": _error_code(record),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line output for terminals: time level logger scope | message."""

    def format(self, record: logging.LogRecord) -> str:
        head = f"{_timestamp(record):%H:%M:%S} {record.levelname:<7} {record.name}"
        scope = _scope(get_context())
        line = f"{head} {scope} | {record.getMessage()}" if scope else f"{head} | {record.getMessage()}"
        code = _error_code(record)
        if code:
            line = f"{line} [{code}]"
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _scope(ctx: LogContext) -> str:
    """tenant/phase:task@shortkey, with absent parts left out."""
    scope = ctx.tenant_id or ""
    if ctx.phase:
        scope += f"/{ctx.phase}"
        if ctx.task:
            scope += f":{ctx.task}"
    if ctx.cache_key:
        scope += f"@{ctx.cache_key[:_SHORT_KEY]}"
    return scope


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def get_logger(name: str) -> logging.Logger:
    """Named logger under the researchcache tree."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
    stream: TextIO | None = None,
) -> None:
    """Install console (and optional rotating file) handlers.

    Calling it again replaces the handlers a previous call installed.

    Args:
        level: Log level name.
        log_format: "json" or "text".
        log_file: Rotating log file path, or None for console only.
        rotation: Size before rotation, e.g. "10MB".
        retention: Rotated files kept.
        stream: Console stream (default stdout).

    Raises:
        ValueError: Unknown log_format.
    """
    if log_format not in _FORMATTERS:
        raise ValueError(f"Unknown log format {log_format!r}; expected one of {sorted(_FORMATTERS)}")
    formatter = _FORMATTERS[log_format]()

    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    handlers[0].addFilter(ContextFilter())
    if log_file:
        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED, True)
        root.addHandler(handler)
