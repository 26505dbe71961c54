# src/pipeline/plugin_kit/base_agent.py — v2
"""Standard stage interface for the matching pipeline.

Every stage is bound to one invocation (``query_id``) and reports its
progress through ``log``, which appends to the query's conversation.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any

from expertmesh.core.models import ConversationEntry, utc_now
from expertmesh.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """Standard interface for all pipeline stages.

    Args:
        query_id: Invocation the stage belongs to.
        record_store: Store receiving conversation entries.
        clock: Source of conversation entry timestamps.
    """

    def __init__(
        self,
        query_id: str,
        record_store: BaseRecordStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.query_id = query_id
        self._records = record_store
        self._clock = clock

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage identifier (e.g. 'analyst', 'ranker')."""

    @property
    def version(self) -> str:
        """Stage version (semver)."""
        return "1.0.0"

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this stage does."""

    @abstractmethod
    async def execute(self, inp: Any) -> Any:
        """Run the stage on its input and return its output."""

    async def log(self, message: str, data: Any = None) -> ConversationEntry:
        """Append a conversation entry for this stage and echo it to the log."""
        entry = ConversationEntry(
            agent=self.name,
            message=message,
            data=data,
            timestamp=self._clock(),
        )
        await self._records.append_conversation(self.query_id, entry)
        logger.info("[%s] %s", self.name.upper(), message)
        return entry
