# tests/unit/cache/test_unit_cache_key.py — v1
"""Tests for cache/cache_key.py — canonicalization and digest stability."""

from __future__ import annotations

import hashlib

import pytest

from researchcache.cache.cache_key import (
    CACHE_KEY_LENGTH,
    canonical_json,
    derive_cache_key,
    is_valid_cache_key,
    namespaced_cache_key,
)
from researchcache.pipeline.tasks.market_insights import MarketInsightsRequest


class TestDeriveCacheKey:
    def test_is_64_lowercase_hex(self, dublin_request):
        key = derive_cache_key(dublin_request)
        assert len(key) == CACHE_KEY_LENGTH
        assert is_valid_cache_key(key)

    def test_matches_sha256_of_canonical_json(self, dublin_request):
        expected = hashlib.sha256(canonical_json(dublin_request).encode("utf-8")).hexdigest()
        assert derive_cache_key(dublin_request) == expected

    def test_known_digest_is_stable(self):
        # Fixed input, fixed output: guards against canonicalization drift.
        canonical = '{"a":"x","b":1}'
        assert canonical_json({"b": 1, "a": "X"}) == canonical
        assert derive_cache_key({"b": 1, "a": "X"}) == hashlib.sha256(canonical.encode()).hexdigest()

    def test_key_order_irrelevant(self):
        a = {"role": "Engineer", "location": "Dublin"}
        b = {"location": "Dublin", "role": "Engineer"}
        assert derive_cache_key(a) == derive_cache_key(b)

    def test_case_and_whitespace_normalized(self):
        a = {"role": "Software Engineer", "location": "Dublin"}
        b = {"role": "  software   ENGINEER ", "location": "dublin\n"}
        assert derive_cache_key(a) == derive_cache_key(b)

    def test_none_values_dropped(self):
        assert derive_cache_key({"role": "x", "note": None}) == derive_cache_key({"role": "x"})

    def test_different_content_different_key(self):
        assert derive_cache_key({"location": "Dublin"}) != derive_cache_key({"location": "Cork"})

    def test_nested_structures(self):
        a = {"filters": {"b": [" X ", 1], "a": True}}
        b = {"filters": {"a": True, "b": ["x", 1]}}
        assert derive_cache_key(a) == derive_cache_key(b)

    def test_pydantic_model_equals_its_dump(self, dublin_request):
        model = MarketInsightsRequest(**dublin_request)
        assert derive_cache_key(model) == derive_cache_key(model.model_dump(mode="json"))

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            derive_cache_key({"when": object()})

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            derive_cache_key({"score": float("nan")})


class TestNamespacedKey:
    def test_prefix_and_length(self, dublin_request):
        key = namespaced_cache_key("listings", dublin_request)
        assert key.startswith("listings-")
        assert len(key) == CACHE_KEY_LENGTH

    def test_never_equals_plain_key(self, dublin_request):
        assert namespaced_cache_key("listings", dublin_request) != derive_cache_key(dublin_request)
        assert not is_valid_cache_key(namespaced_cache_key("listings", dublin_request))


class TestIsValidCacheKey:
    @pytest.mark.parametrize("value", ["", "abc", "A" * 64, "g" * 64, "a" * 65, None])
    def test_rejects(self, value):
        assert not is_valid_cache_key(value)

    def test_accepts_hex(self):
        assert is_valid_cache_key("0123456789abcdef" * 4)
