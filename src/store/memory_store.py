# src/store/memory_store.py — v1
"""In-process profile and record store (STORE_BACKEND=memory).

Intended for development, tests and small demo datasets. State lives for
the lifetime of the process only.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

import numpy as np

from expertmesh.core.models import (
    CandidateProfile,
    ConversationEntry,
    QueryRecord,
    RequirementSet,
    ScoredCandidate,
    TaskRecord,
    TaskStatus,
)
from expertmesh.core.similarity import cosine_scores, top_k
from expertmesh.store.base_profile_store import (
    DuplicateCandidateError,
    keyword_regex,
    matches_keywords,
)
from expertmesh.store.base_record_store import RecordNotFoundError
from expertmesh.store.base_store import BaseExpertStore

logger = logging.getLogger(__name__)


class InMemoryStore(BaseExpertStore):
    """Dict-backed store implementing both profile and record interfaces."""

    def __init__(self) -> None:
        self._candidates: dict[str, CandidateProfile] = {}
        self._queries: dict[str, QueryRecord] = {}
        self._tasks: dict[str, TaskRecord] = {}

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def add_candidate(self, candidate: CandidateProfile) -> str:
        candidate_id = candidate.id or uuid.uuid4().hex
        if candidate_id in self._candidates:
            raise DuplicateCandidateError(f"Candidate id exists: {candidate_id}")
        if candidate.email and any(
            c.email == candidate.email for c in self._candidates.values()
        ):
            raise DuplicateCandidateError(f"Candidate email exists: {candidate.email}")
        self._candidates[candidate_id] = candidate.model_copy(update={"id": candidate_id})
        return candidate_id

    async def get_candidate(self, candidate_id: str) -> CandidateProfile | None:
        return self._candidates.get(candidate_id)

    async def list_candidates(
        self, limit: int | None = None, ids: list[str] | None = None
    ) -> list[CandidateProfile]:
        candidates = list(self._candidates.values())
        if ids is not None:
            wanted = set(ids)
            candidates = [c for c in candidates if c.id in wanted]
        return candidates if limit is None else candidates[:limit]

    async def count(self) -> int:
        return len(self._candidates)

    async def vector_search(
        self,
        query_vector: list[float],
        num_candidates: int,
        limit: int,
    ) -> list[ScoredCandidate]:
        pool = [
            c for c in self._candidates.values()
            if len(c.embedding) == len(query_vector)
        ]
        if not pool:
            return []
        matrix = np.asarray([c.embedding for c in pool], dtype=np.float64)
        scores = cosine_scores(query_vector, matrix)
        indices = top_k(scores, min(num_candidates, len(pool)))[:limit]
        return [
            ScoredCandidate(candidate=pool[i], similarity=float(scores[i]))
            for i in indices
        ]

    async def keyword_search(
        self, pattern: str | None, limit: int
    ) -> list[CandidateProfile]:
        candidates = list(self._candidates.values())
        if pattern is not None:
            regex = keyword_regex(pattern)
            candidates = [c for c in candidates if matches_keywords(c, regex)]
        return candidates[:limit]

    async def increment_match_count(self, candidate_ids: list[str]) -> None:
        for candidate_id in candidate_ids:
            candidate = self._candidates.get(candidate_id)
            if candidate is not None:
                self._candidates[candidate_id] = candidate.model_copy(
                    update={"match_count": candidate.match_count + 1}
                )

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def create_query(self, record: QueryRecord) -> None:
        self._queries[record.query_id] = record.model_copy(deep=True)

    async def append_conversation(
        self, query_id: str, entry: ConversationEntry
    ) -> None:
        self._require_query(query_id).conversation.append(entry)

    async def complete_query(
        self,
        query_id: str,
        requirements: RequirementSet,
        result_ids: list[str],
        completed_at: datetime,
    ) -> None:
        record = self._require_query(query_id)
        record.status = "completed"
        record.parsed_requirements = requirements
        record.results = list(result_ids)
        record.completed_at = completed_at

    async def fail_query(self, query_id: str) -> None:
        record = self._queries.get(query_id)
        if record is None:
            logger.warning("Cannot mark unknown query %s failed", query_id)
            return
        record.status = "failed"

    async def get_query(self, query_id: str) -> QueryRecord | None:
        record = self._queries.get(query_id)
        return record.model_copy(deep=True) if record else None

    async def create_task(self, task: TaskRecord) -> None:
        self._tasks[task.task_id] = task.model_copy(deep=True)

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        completed_at: datetime | None = None,
    ) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            raise RecordNotFoundError(task_id)
        task.status = status
        if completed_at is not None:
            task.completed_at = completed_at

    async def get_task(self, task_id: str) -> TaskRecord | None:
        task = self._tasks.get(task_id)
        return task.model_copy(deep=True) if task else None

    def _require_query(self, query_id: str) -> QueryRecord:
        record = self._queries.get(query_id)
        if record is None:
            raise RecordNotFoundError(query_id)
        return record
