# src/pipeline/background.py — v1
"""In-process background jobs that outlive the request that started them.

Jobs are plain asyncio tasks. The runner keeps a strong reference to each
one until it finishes, caps its wall time, and logs failures instead of
raising them: by the time a job fails its caller has already been answered.
The host keeps the process alive by awaiting drain() before shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass
from typing import Any

from researchcache.core.errors import ResearchError
from researchcache.logging.context import set_phase_context, set_request_context

logger = logging.getLogger(__name__)


@dataclass
class BackgroundFailure:
    """A job that ended in an error or ran past its budget."""

    name: str
    error_code: str
    message: str
    duration_ms: int


class BackgroundTaskRunner:
    """Spawn, track and drain fire-and-forget coroutines.

    Args:
        time_budget_s: Default wall-time cap per job. None = unbounded.
    """

    def __init__(self, time_budget_s: float | None = None) -> None:
        self._time_budget_s = time_budget_s
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failures: list[BackgroundFailure] = []
        self._completed = 0

    @property
    def pending(self) -> int:
        """Jobs scheduled but not yet finished."""
        return len(self._tasks)

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def failures(self) -> list[BackgroundFailure]:
        return list(self._failures)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str,
        context: Mapping[str, str | None] | None = None,
        time_budget_s: float | None = None,
    ) -> asyncio.Task[Any]:
        """Schedule `coro` and return immediately.

        Must be called from a running event loop. The job runs in a copy of
        the caller's context; `context` entries (tenant_id, cache_key, phase,
        task) are applied on top for log correlation.
        """
        budget = time_budget_s if time_budget_s is not None else self._time_budget_s
        task = asyncio.create_task(
            self._guarded(coro, name, dict(context or {}), budget), name=name
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Spawned background job '%s' (budget=%ss)", name, budget)
        return task

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for every pending job, including ones spawned while waiting.

        Returns:
            True if all jobs finished, False if the timeout elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                break
            await asyncio.wait(set(self._tasks), timeout=remaining)
        if self._tasks:
            logger.warning("Drain timed out with %d job(s) still running", len(self._tasks))
            return False
        return True

    async def _guarded(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str,
        context: dict[str, str | None],
        budget: float | None,
    ) -> Any:
        if context.get("tenant_id"):
            set_request_context(context["tenant_id"], context.get("cache_key"))
        if context.get("phase"):
            set_phase_context(context["phase"], context.get("task"))

        start = time.monotonic()
        try:
            if budget is None:
                result = await coro
            else:
                result = await asyncio.wait_for(coro, timeout=budget)
        except asyncio.TimeoutError:
            self._fail(name, "TIME_BUDGET_EXCEEDED", f"exceeded {budget}s", start)
            logger.error("Background job '%s' exceeded its %ss budget", name, budget)
            return None
        except asyncio.CancelledError:
            logger.warning("Background job '%s' cancelled", name)
            raise
        except ResearchError as e:
            self._fail(name, e.code, e.message, start)
            logger.error("Background job '%s' failed [%s]: %s", name, e.code, e.message)
            return None
        except Exception as e:
            self._fail(name, type(e).__name__, str(e), start)
            logger.exception("Background job '%s' crashed", name)
            return None

        self._completed += 1
        logger.info(
            "Background job '%s' finished in %dms",
            name, int((time.monotonic() - start) * 1000),
        )
        return result

    def _fail(self, name: str, code: str, message: str, start: float) -> None:
        self._failures.append(BackgroundFailure(
            name=name,
            error_code=code,
            message=message,
            duration_ms=int((time.monotonic() - start) * 1000),
        ))
