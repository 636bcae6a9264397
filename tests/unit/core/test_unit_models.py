# tests/unit/core/test_unit_models.py — v2
"""Tests for core/models.py."""

from __future__ import annotations

from datetime import timezone

import pytest
from pydantic import ValidationError

from researchcache.core.models import (
    GenerationMetadata,
    GenerationRequest,
    GenerationResult,
    SourceRef,
    utc_now,
)


class _Req(GenerationRequest):
    role: str


class TestCoreModels:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc

    def test_request_is_frozen(self):
        req = _Req(role="x")
        with pytest.raises(ValidationError):
            req.role = "y"

    def test_request_forbids_extra(self):
        with pytest.raises(ValidationError):
            _Req(role="x", unexpected=True)

    def test_source_relevance_bounds(self):
        with pytest.raises(ValidationError):
            SourceRef(url="u", title="t", relevance_score=1.5)

    def test_result_frozen(self):
        result = GenerationResult(
            data={"a": 1},
            metadata=GenerationMetadata(model_used="m", prompt_version="1.0.0"),
        )
        with pytest.raises(ValidationError):
            result.data = {}
        assert result.metadata.generated_at.tzinfo is not None
