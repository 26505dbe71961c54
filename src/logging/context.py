# src/logging/context.py — v2
"""Contextual logging support: attach query_id, task_id and agent to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per pipeline invocation; asyncio tasks inherit a copy.
_query_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "query_id", default=None
)
_task_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task_id", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    query_id: str | None = None
    task_id: str | None = None
    agent: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        query_id=_query_id.get(),
        task_id=_task_id.get(),
        agent=_agent.get(),
    )


def set_query_context(query_id: str, task_id: str) -> None:
    """Set invocation-level context (called once per pipeline run)."""
    _query_id.set(query_id)
    _task_id.set(task_id)


def set_agent_context(agent: str | None) -> None:
    """Set the stage currently executing."""
    _agent.set(agent)


def clear_context() -> None:
    """Reset all context variables."""
    _query_id.set(None)
    _task_id.set(None)
    _agent.set(None)
