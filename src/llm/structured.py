# src/llm/structured.py — v1
"""Structured-output parsing: JSON extraction, schema validation, light coercion.

Coercion only repairs common drift in values the model did provide
(formatted numbers, out-of-range scores, enum casing). It never invents
missing fields; anything it cannot repair is a SchemaValidationError.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from researchcache.core.errors import SchemaValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_MAX_COERCION_PASSES = 3
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_NUMBER_JUNK_RE = re.compile(r"[^\d.\-eE]")


def extract_json(content: str) -> Any:
    """Pull the JSON payload out of provider text.

    Accepts bare JSON, fenced ```json blocks, or JSON surrounded by prose.

    Raises:
        SchemaValidationError: If no JSON object can be decoded.
    """
    text = content.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise SchemaValidationError(
                f"Provider returned invalid JSON: {e}", issues=[{"message": str(e)}]
            ) from e
    raise SchemaValidationError(
        "Provider returned no JSON content", issues=[{"message": "no JSON object found"}]
    )


def parse_structured_output(content: str, schema: type[M]) -> tuple[M, bool]:
    """Validate provider text against a schema.

    Returns:
        (validated model, whether coercion was applied).

    Raises:
        SchemaValidationError: If the output cannot be made to fit.
    """
    raw = extract_json(content)
    try:
        return schema.model_validate(raw), False
    except ValidationError as first_error:
        errors = first_error.errors()

    patched = copy.deepcopy(raw)
    applied = 0
    for _ in range(_MAX_COERCION_PASSES):
        fixed_this_pass = 0
        for issue in errors:
            if _coerce_issue(patched, issue):
                fixed_this_pass += 1
        applied += fixed_this_pass
        try:
            result = schema.model_validate(patched)
        except ValidationError as e:
            errors = e.errors()
            if fixed_this_pass == 0:
                break
            continue
        logger.info("Coerced %d field(s) to fit %s", applied, schema.__name__)
        return result, True

    raise SchemaValidationError(
        f"Output does not match {schema.__name__}",
        issues=[
            {"message": err["msg"], "path": [str(p) for p in err["loc"]]}
            for err in errors
        ],
    )


def _coerce_issue(payload: Any, issue: dict[str, Any]) -> bool:
    """Apply one targeted fix in place. Returns True if something changed."""
    loc = tuple(issue.get("loc", ()))
    if not loc:
        return False
    value = issue.get("input")
    kind = issue.get("type", "")
    ctx = issue.get("ctx") or {}

    if kind in ("greater_than_equal", "greater_than") and isinstance(value, (int, float)):
        bound = ctx.get("ge", ctx.get("gt"))
        return bound is not None and _set_at(payload, loc, bound)
    if kind in ("less_than_equal", "less_than") and isinstance(value, (int, float)):
        bound = ctx.get("le", ctx.get("lt"))
        return bound is not None and _set_at(payload, loc, bound)
    if kind in ("float_parsing", "int_parsing") and isinstance(value, str):
        cleaned = _NUMBER_JUNK_RE.sub("", value)
        try:
            number = float(cleaned)
        except ValueError:
            return False
        return _set_at(payload, loc, int(number) if kind == "int_parsing" else number)
    if kind in ("literal_error", "enum") and isinstance(value, str):
        normalized = value.strip().lower()
        return normalized != value and _set_at(payload, loc, normalized)
    return False


def _set_at(payload: Any, loc: tuple[Any, ...], value: Any) -> bool:
    target = payload
    for part in loc[:-1]:
        try:
            target = target[part]
        except (KeyError, IndexError, TypeError):
            return False
    last = loc[-1]
    try:
        target[last] = value
    except (KeyError, IndexError, TypeError):
        return False
    return True
