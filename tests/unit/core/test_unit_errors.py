# tests/unit/core/test_unit_errors.py — v1
"""Tests for core/errors.py — taxonomy and classification helpers."""

from __future__ import annotations

from researchcache.core.errors import (
    CacheCorruptionError,
    GenerationError,
    LadderExhaustedError,
    OutputTruncatedError,
    ProviderConfigurationError,
    ProviderTimeoutError,
    ProviderUpstreamError,
    RateLimitError,
    RequestValidationError,
    ResearchError,
    SchemaValidationError,
    is_transient,
)


class TestTaxonomy:
    def test_transient_family(self):
        for error in (
            RateLimitError(),
            ProviderTimeoutError(),
            ProviderUpstreamError("boom", status_code=503),
        ):
            assert is_transient(error)
            assert isinstance(error, GenerationError)

    def test_capability_and_config_faults_not_transient(self):
        assert not is_transient(SchemaValidationError())
        assert not is_transient(OutputTruncatedError(8192, 8192))
        assert not is_transient(ProviderConfigurationError("no key"))
        assert not is_transient(ValueError("plain"))

    def test_truncation_is_a_schema_failure(self):
        error = OutputTruncatedError(max_tokens=100, output_tokens=100)
        assert isinstance(error, SchemaValidationError)
        assert error.code == "OUTPUT_TRUNCATED"

    def test_codes_unique(self):
        classes = [
            RequestValidationError, CacheCorruptionError, RateLimitError,
            ProviderTimeoutError, ProviderUpstreamError, SchemaValidationError,
            OutputTruncatedError, ProviderConfigurationError, LadderExhaustedError,
        ]
        codes = [c.code for c in classes]
        assert len(set(codes)) == len(codes)

    def test_all_derive_from_research_error(self):
        assert issubclass(LadderExhaustedError, ResearchError)
        assert issubclass(CacheCorruptionError, ResearchError)


class TestErrorPayloads:
    def test_rate_limit_retry_after(self):
        assert RateLimitError(retry_after_s=7).retry_after_s == 7

    def test_validation_issues_default(self):
        assert RequestValidationError("bad").issues == []

    def test_cache_corruption_message(self):
        error = CacheCorruptionError("k" * 64, issues=[{"message": "x"}])
        assert error.cache_key == "k" * 64
        assert "failed re-validation" in str(error)

    def test_ladder_exhausted_summary(self):
        last = SchemaValidationError("bad shape")
        error = LadderExhaustedError(
            "market_insights.quick",
            [("a:small", "TIMEOUT"), ("a:large", "SCHEMA_VALIDATION")],
            last,
        )
        assert error.last_error_code == "SCHEMA_VALIDATION"
        assert "a:small=TIMEOUT" in str(error)
        assert error.attempts[1] == ("a:large", "SCHEMA_VALIDATION")

    def test_ladder_exhausted_without_classified_error(self):
        assert LadderExhaustedError("t", [], None).last_error_code == "GENERATION_ERROR"
