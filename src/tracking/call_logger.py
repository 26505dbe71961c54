# src/tracking/call_logger.py — v2
"""LLM call logging: records every completion made by a pipeline stage.

The step of each record is the query_id of the invocation that made the
call, so usage can be read back per query.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from expertmesh.llm.models import LLMResponse
from expertmesh.tracking.models import LLMCallRecord, UsageSummary

logger = logging.getLogger(__name__)


class CallLogger:
    """Keeps the most recent LLM call records across pipeline invocations.

    Args:
        max_records: Oldest records are evicted beyond this many.
            None keeps every record (one-off runs and tests).
    """

    def __init__(self, max_records: int | None = None) -> None:
        self._records: deque[LLMCallRecord] = deque(maxlen=max_records)

    def record(
        self,
        agent: str,
        step: str,
        response: LLMResponse,
        status: str = "success",
    ) -> LLMCallRecord:
        """Record an LLM call.

        Args:
            agent: Stage name (e.g. "analyst").
            step: Query id of the invocation.
            response: LLM response with token usage.
            status: Call status (success, failed).

        Returns:
            The recorded LLMCallRecord.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            agent=agent,
            step=step,
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.input_tokens + response.output_tokens,
            latency_ms=response.latency_ms,
            status=status,
        )
        self._records.append(record)
        logger.debug(
            "LLM call by %s: %d tokens in %dms",
            agent, record.total_tokens, record.latency_ms,
        )
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        """Retained calls, oldest first."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across retained calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        """Number of retained LLM calls."""
        return len(self._records)

    def records_for(self, step: str) -> list[LLMCallRecord]:
        """Calls made while processing one query."""
        return [r for r in self._records if r.step == step]

    def summary(self, step: str | None = None) -> UsageSummary:
        """Aggregate usage, optionally restricted to one query."""
        records = self._records if step is None else self.records_for(step)
        by_agent: dict[str, int] = {}
        for r in records:
            by_agent[r.agent] = by_agent.get(r.agent, 0) + r.total_tokens
        return UsageSummary(
            total_calls=len(records),
            total_input_tokens=sum(r.input_tokens for r in records),
            total_output_tokens=sum(r.output_tokens for r in records),
            total_tokens=sum(r.total_tokens for r in records),
            by_agent=by_agent,
        )

    def save(self, path: Path) -> None:
        """Save retained records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
