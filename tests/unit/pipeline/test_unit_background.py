# tests/unit/pipeline/test_unit_background.py — v1
"""Tests for pipeline/background.py — BackgroundTaskRunner."""

from __future__ import annotations

import asyncio
import logging

import pytest

from researchcache.core.errors import NotFoundError
from researchcache.logging.context import clear_context, get_context, set_request_context
from researchcache.pipeline.background import BackgroundTaskRunner


async def _value(v, delay=0.0):
    await asyncio.sleep(delay)
    return v


class TestSpawn:
    @pytest.mark.asyncio
    async def test_returns_immediately(self):
        runner = BackgroundTaskRunner()
        gate = asyncio.Event()

        async def wait_for_gate():
            await gate.wait()

        runner.spawn(wait_for_gate(), name="gated")
        assert runner.pending == 1
        gate.set()
        assert await runner.drain(1.0) is True
        assert runner.pending == 0
        assert runner.completed == 1

    @pytest.mark.asyncio
    async def test_task_result(self):
        runner = BackgroundTaskRunner()
        task = runner.spawn(_value(42), name="answer")
        assert await task == 42

    @pytest.mark.asyncio
    async def test_context_applied(self):
        clear_context()
        runner = BackgroundTaskRunner()

        async def capture():
            return get_context().as_dict()

        task = runner.spawn(
            capture(), name="ctx",
            context={"tenant_id": "org-1", "cache_key": "e" * 64, "phase": "deep", "task": "market_insights"},
        )
        assert await task == {
            "tenant_id": "org-1", "cache_key": "e" * 64, "phase": "deep", "task": "market_insights",
        }
        assert get_context().tenant_id is None

    @pytest.mark.asyncio
    async def test_inherits_caller_context(self):
        set_request_context("org-9")
        runner = BackgroundTaskRunner()

        async def capture():
            return get_context().tenant_id

        assert await runner.spawn(capture(), name="inherit") == "org-9"
        clear_context()


class TestFailures:
    @pytest.mark.asyncio
    async def test_research_error_recorded(self, caplog):
        runner = BackgroundTaskRunner()

        async def missing():
            raise NotFoundError("no quick row")

        with caplog.at_level(logging.ERROR, logger="researchcache.pipeline.background"):
            runner.spawn(missing(), name="deep:x")
            await runner.drain(1.0)
        [failure] = runner.failures
        assert failure.name == "deep:x"
        assert failure.error_code == "NOT_FOUND"
        assert failure.message == "no quick row"
        assert "NOT_FOUND" in caplog.text
        assert runner.completed == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_recorded(self):
        runner = BackgroundTaskRunner()

        async def crash():
            raise KeyError("boom")

        task = runner.spawn(crash(), name="crash")
        assert await task is None
        assert runner.failures[0].error_code == "KeyError"

    @pytest.mark.asyncio
    async def test_time_budget(self):
        runner = BackgroundTaskRunner(time_budget_s=0.01)
        runner.spawn(_value(1, delay=1.0), name="slow")
        await runner.drain(2.0)
        assert runner.failures[0].error_code == "TIME_BUDGET_EXCEEDED"

    @pytest.mark.asyncio
    async def test_per_job_budget_overrides_default(self):
        runner = BackgroundTaskRunner(time_budget_s=0.01)
        task = runner.spawn(_value("ok", delay=0.05), name="longer", time_budget_s=1.0)
        assert await task == "ok"
        assert runner.failures == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        runner = BackgroundTaskRunner()
        task = runner.spawn(_value(1, delay=10.0), name="cancel-me")
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert runner.pending == 0


class TestDrain:
    @pytest.mark.asyncio
    async def test_empty(self):
        assert await BackgroundTaskRunner().drain(0.1) is True

    @pytest.mark.asyncio
    async def test_timeout_returns_false(self):
        runner = BackgroundTaskRunner()
        task = runner.spawn(_value(1, delay=5.0), name="long")
        assert await runner.drain(0.02) is False
        assert runner.pending == 1
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_waits_for_jobs_spawned_by_jobs(self):
        runner = BackgroundTaskRunner()
        done = []

        async def child():
            await asyncio.sleep(0.01)
            done.append("child")

        async def parent():
            runner.spawn(child(), name="child")
            done.append("parent")

        runner.spawn(parent(), name="parent")
        assert await runner.drain(1.0) is True
        assert done == ["parent", "child"]
        assert runner.completed == 2
