# src/tracking/call_logger.py — v2
"""Generation call logging — records every provider attempt.

Keeps the most recent records in a bounded buffer so a health endpoint can
report failure and latency figures without an external metrics stack.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from researchcache.llm.ladder import ModelTier
from researchcache.llm.models import LLMResponse
from researchcache.tracking.models import (
    CallStats,
    CallStatus,
    GenerationCallRecord,
    TaskCallStats,
)

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 100


class CallLogger:
    """Accumulates generation call records in a ring buffer."""

    def __init__(self, max_records: int = DEFAULT_BUFFER_SIZE) -> None:
        self._records: deque[GenerationCallRecord] = deque(maxlen=max_records)

    def record(
        self,
        *,
        task: str,
        ladder: str,
        tier_index: int,
        tier: ModelTier,
        attempt: int,
        status: CallStatus,
        response: LLMResponse | None = None,
        error: BaseException | None = None,
        latency_ms: int = 0,
        coerced: bool = False,
    ) -> GenerationCallRecord:
        """Record a single provider attempt.

        Args:
            task: Task spec name (e.g. "market_insights.quick").
            ladder: Ladder name.
            tier_index: Position of the tier in the ladder.
            tier: The tier that was called.
            attempt: 1-based attempt number within the tier.
            status: Outcome of the attempt.
            response: Provider response, if one arrived.
            error: Classified error, if the attempt failed.
            latency_ms: Wall-clock time of the attempt.
            coerced: Whether output coercion was needed.

        Returns:
            The recorded GenerationCallRecord.
        """
        record = GenerationCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            task=task,
            ladder=ladder,
            tier_index=tier_index,
            provider=tier.provider,
            model=response.model if response is not None else tier.model,
            attempt=attempt,
            status=status,
            error_type=getattr(error, "code", type(error).__name__) if error else None,
            error_message=str(error) if error else None,
            input_tokens=response.input_tokens if response is not None else 0,
            output_tokens=response.output_tokens if response is not None else 0,
            latency_ms=response.latency_ms if response is not None else latency_ms,
            coerced=coerced,
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[GenerationCallRecord]:
        """Buffered records, oldest first."""
        return list(self._records)

    def recent(self, count: int = 20) -> list[GenerationCallRecord]:
        """Most recent `count` records."""
        return list(self._records)[-count:]

    @property
    def total_calls(self) -> int:
        return len(self._records)

    def stats(self) -> CallStats:
        """Summary across the buffered records."""
        records = list(self._records)
        if not records:
            return CallStats()

        by_task: dict[str, TaskCallStats] = {}
        latency_totals: dict[str, int] = {}
        for r in records:
            entry = by_task.setdefault(r.task, TaskCallStats())
            entry.calls += 1
            if r.status == "failed":
                entry.failures += 1
            latency_totals[r.task] = latency_totals.get(r.task, 0) + r.latency_ms
        for task, entry in by_task.items():
            entry.avg_latency_ms = round(latency_totals[task] / entry.calls, 1)

        return CallStats(
            total_calls=len(records),
            failures=sum(1 for r in records if r.status == "failed"),
            escalations=sum(1 for r in records if r.status == "escalated"),
            coercions=sum(1 for r in records if r.coerced),
            avg_latency_ms=round(sum(r.latency_ms for r in records) / len(records), 1),
            total_input_tokens=sum(r.input_tokens for r in records),
            total_output_tokens=sum(r.output_tokens for r in records),
            by_task=by_task,
        )

    def clear(self) -> None:
        self._records.clear()

    def save(self, path: Path, append: bool = False) -> None:
        """Save buffered records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a" if append else "w") as f:
            for record in self._records:
                f.write(record.model_dump_json() + "\n")

    @classmethod
    def load(cls, path: Path, max_records: int = DEFAULT_BUFFER_SIZE) -> CallLogger:
        """Rebuild a logger from a JSON Lines file written by save().

        Only the last `max_records` lines are kept. Malformed lines are skipped.
        """
        call_logger = cls(max_records=max_records)
        with path.open() as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    call_logger._records.append(
                        GenerationCallRecord.model_validate_json(line)
                    )
                except ValueError:
                    logger.warning("Skipping malformed call record at %s:%d", path, line_no)
        return call_logger
