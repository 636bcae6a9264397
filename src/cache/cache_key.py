# src/cache/cache_key.py — v1
"""Stable cache identities derived from semantic request content.

A request is canonicalized (sorted keys, trimmed lowercase strings with
collapsed whitespace) and hashed with SHA-256. Identical canonical input
always yields the identical 64-hex key, across processes and time.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

CACHE_KEY_LENGTH = 64

_CACHE_KEY_RE = re.compile(r"^[a-f0-9]{64}$")
_WHITESPACE_RE = re.compile(r"\s+")


def derive_cache_key(request: BaseModel | Mapping[str, Any]) -> str:
    """Return the SHA-256 hex digest of the canonical request.

    Raises:
        TypeError: If the request holds values JSON cannot represent.
    """
    canonical = canonical_json(request)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def namespaced_cache_key(prefix: str, request: BaseModel | Mapping[str, Any]) -> str:
    """Key for a separate cache domain sharing the same input shape.

    The result is "<prefix>-<digest>" truncated to 64 characters, so it
    fits the same column as a plain key but can never equal one.
    """
    return f"{prefix}-{derive_cache_key(request)}"[:CACHE_KEY_LENGTH]


def is_valid_cache_key(value: str) -> bool:
    """True for a plain (un-namespaced) 64-hex key."""
    return bool(_CACHE_KEY_RE.match(value or ""))


def canonical_json(request: BaseModel | Mapping[str, Any]) -> str:
    """Compact, key-sorted JSON of the normalized request."""
    if isinstance(request, BaseModel):
        payload: Any = request.model_dump(mode="json")
    else:
        payload = dict(request)
    return json.dumps(
        _normalize(payload),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def _normalize(value: Any) -> Any:
    """Recursively normalize strings; None-valued keys are dropped."""
    if isinstance(value, str):
        return _WHITESPACE_RE.sub(" ", value).strip().lower()
    if isinstance(value, Mapping):
        return {
            str(k): _normalize(v) for k, v in value.items() if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}")
