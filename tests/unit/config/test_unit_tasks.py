# tests/unit/config/test_unit_tasks.py — v1
"""Tests for config/tasks.py."""

from __future__ import annotations

import pytest

from researchcache.config.tasks import PROMPT_VERSIONS, TASK_CONFIGS, get_task_config


class TestTaskConfigs:
    def test_market_insights_phases(self):
        quick = get_task_config("market_insights", "quick")
        deep = get_task_config("market_insights", "deep")
        assert quick.max_tokens == 8192
        assert deep.max_tokens > quick.max_tokens
        assert 0.0 <= quick.temperature <= 1.0

    def test_unknown_task(self):
        with pytest.raises(KeyError):
            get_task_config("market_insights", "listings")

    def test_every_task_has_prompt_version(self):
        for name in {key.split(".")[0] for key in TASK_CONFIGS}:
            assert name in PROMPT_VERSIONS

    def test_prompt_versions_semver(self):
        for version in PROMPT_VERSIONS.values():
            assert len(version.split(".")) == 3
