# src/pipeline/propagation.py — v1
"""Best-effort propagation of deep results to an external subject record.

The deep-phase cache row is the durable source of truth. Copying the result
onto a subject (a hiring plan, a playbook) is a convenience for downstream
readers: failures are logged, never raised, never retried.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from researchcache.cache.models import ResearchCacheEntry

logger = logging.getLogger(__name__)


class BaseSubjectWriter(ABC):
    """Persists a denormalized copy of a deep result onto a subject."""

    @abstractmethod
    async def write(
        self, tenant_id: str, subject_id: str, entry: ResearchCacheEntry
    ) -> None:
        """Write `entry` for `subject_id`. May raise; callers absorb errors."""


class CallbackSubjectWriter(BaseSubjectWriter):
    """Adapts an async callable (tenant_id, subject_id, payload) to a writer.

    The payload is the entry's results plus its cache key and sources.
    """

    def __init__(
        self, callback: Callable[[str, str, dict[str, Any]], Awaitable[None]]
    ) -> None:
        self._callback = callback

    async def write(
        self, tenant_id: str, subject_id: str, entry: ResearchCacheEntry
    ) -> None:
        await self._callback(tenant_id, subject_id, {
            "cache_key": entry.cache_key,
            "results": entry.results,
            "sources": entry.sources,
            "generated_at": entry.created_at.isoformat(),
        })


async def propagate_best_effort(
    writer: BaseSubjectWriter | None,
    tenant_id: str,
    subject_id: str | None,
    entry: ResearchCacheEntry,
) -> bool:
    """Run the side write; return whether it succeeded.

    Skipped (False) when there is no writer or no subject.
    """
    if writer is None or not subject_id:
        return False
    try:
        await writer.write(tenant_id, subject_id, entry)
    except Exception as e:
        logger.warning(
            "Propagation to subject %s failed (%s: %s); deep result stays cached",
            subject_id, type(e).__name__, e,
        )
        return False
    logger.info("Propagated deep result to subject %s", subject_id)
    return True
