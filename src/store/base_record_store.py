# src/store/base_record_store.py — v1
"""Abstract store for query and task records.

Records use invocation-unique identifiers, so concurrent invocations
never write to the same record.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from expertmesh.core.models import (
    ConversationEntry,
    QueryRecord,
    RequirementSet,
    TaskRecord,
    TaskStatus,
)


class RecordNotFoundError(KeyError):
    """Raised when updating a record that does not exist."""


class BaseRecordStore(ABC):
    """Persistence for the per-invocation audit trail."""

    async def ensure_indexes(self) -> None:
        """Provision indexes. Called once at startup."""

    @abstractmethod
    async def create_query(self, record: QueryRecord) -> None:
        """Insert a new query record."""

    @abstractmethod
    async def append_conversation(
        self, query_id: str, entry: ConversationEntry
    ) -> None:
        """Append one entry to the record's conversation (never reorders)."""

    @abstractmethod
    async def complete_query(
        self,
        query_id: str,
        requirements: RequirementSet,
        result_ids: list[str],
        completed_at: datetime,
    ) -> None:
        """Mark a query completed with its requirements and ranked result ids."""

    @abstractmethod
    async def fail_query(self, query_id: str) -> None:
        """Mark a query failed."""

    @abstractmethod
    async def get_query(self, query_id: str) -> QueryRecord | None:
        """Fetch a query record including its conversation."""

    @abstractmethod
    async def create_task(self, task: TaskRecord) -> None:
        """Insert a new task record."""

    @abstractmethod
    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        completed_at: datetime | None = None,
    ) -> None:
        """Set a task's status (and completion time for terminal states)."""

    @abstractmethod
    async def get_task(self, task_id: str) -> TaskRecord | None:
        """Fetch a task record."""
