# src/pipeline/orchestrator.py — v2
"""Pipeline orchestrator: result cache, audit records and the stage chain.

One invocation moves through:
  CACHE_CHECK -> COMPLETED                      (result cache hit)
  CACHE_CHECK -> PROCESSING -> COMPLETED        (fresh run)
  CACHE_CHECK -> PROCESSING -> FAILED           (unrecoverable stage error)

A cache hit touches no records. A fresh run creates a Query record and a
Task record up front, runs analyst -> retriever -> verifier -> ranker
strictly in sequence, then finalizes both records and writes the result
cache. On failure both records are marked failed and the original error
is re-raised.
"""

from __future__ import annotations

import enum
import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import ValidationError

from expertmesh.cache.fingerprint import query_hash
from expertmesh.cache.models import ResultCacheEntry
from expertmesh.config.agents import ORCHESTRATOR, TASK_AGENTS
from expertmesh.core.models import (
    ConversationEntry,
    MatchResult,
    QueryRecord,
    SearchResponse,
    TaskRecord,
    utc_now,
)
from expertmesh.logging.context import (
    clear_context,
    set_agent_context,
    set_query_context,
)
from expertmesh.pipeline.agents.analyst import RequirementAnalystAgent
from expertmesh.pipeline.agents.ranker import RankerAgent, RankerInput
from expertmesh.pipeline.agents.retriever import (
    CandidateRetrieverAgent,
    RetrieverInput,
)
from expertmesh.pipeline.agents.verifier import CandidateVerifierAgent

if TYPE_CHECKING:
    from expertmesh.cache.base_cache_store import BaseCacheStore
    from expertmesh.config.settings import Settings
    from expertmesh.embeddings.gateway import EmbeddingGateway
    from expertmesh.llm.base_client import BaseLLMClient
    from expertmesh.store.base_store import BaseExpertStore
    from expertmesh.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

CACHE_HIT_MESSAGE = "Retrieved optimized results from lightning cache."


class InvalidQueryError(ValueError):
    """Raised when the query is missing, empty or not text."""


class RunState(str, enum.Enum):
    CACHE_CHECK = "cache_check"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def new_query_id() -> str:
    return f"query_{uuid.uuid4().hex[:8]}"


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:8]}"


class PipelineOrchestrator:
    """Top-level coordinator for one search invocation at a time.

    Holds no per-invocation state, so a single instance can serve
    concurrent invocations.

    Args:
        settings: Application settings (limits, TTL, ranking constants).
        store: Combined profile and record store.
        cache_store: Embedding and result cache.
        embeddings: Cached embedding gateway used by the retriever.
        llm_client: Completion client for the analyst and ranker.
        call_logger: Optional LLM usage tracker.
        clock: Source of "now"; injectable for expiry tests.
    """

    def __init__(
        self,
        settings: Settings,
        store: BaseExpertStore,
        cache_store: BaseCacheStore,
        embeddings: EmbeddingGateway,
        llm_client: BaseLLMClient,
        call_logger: CallLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._store = store
        self._cache = cache_store
        self._embeddings = embeddings
        self._llm_client = llm_client
        self._call_logger = call_logger
        self._clock = clock

    @property
    def call_logger(self) -> CallLogger | None:
        return self._call_logger

    async def process_query(self, raw_query: str) -> SearchResponse:
        """Run (or replay from cache) the matching pipeline for one query.

        Raises:
            InvalidQueryError: If ``raw_query`` is not non-empty text. No
                record is created in that case.
            Exception: Any unrecoverable stage or store error, after the
                Query and Task records have been marked failed.
        """
        if not isinstance(raw_query, str) or not raw_query.strip():
            raise InvalidQueryError("Query is required")

        key = query_hash(raw_query)
        logger.debug("State %s for query hash %s", RunState.CACHE_CHECK.value, key[:12])
        cached = await self._cache.get_result(key, self._clock())
        if cached is not None:
            try:
                replayed = self._replay(cached)
            except ValidationError as exc:
                logger.warning(
                    "Ignoring unreadable cached result %s: %s", key[:12], exc
                )
            else:
                logger.info("Result cache hit for %r", raw_query)
                return replayed

        query_id = new_query_id()
        task_id = new_task_id()
        set_query_context(query_id, task_id)
        start = time.monotonic()
        task_created = False
        try:
            await self._store.create_query(
                QueryRecord(query_id=query_id, raw_query=raw_query, created_at=self._clock())
            )
            await self._store.create_task(
                TaskRecord(
                    task_id=task_id,
                    query_id=query_id,
                    agents=list(TASK_AGENTS),
                    status="in_progress",
                    started_at=self._clock(),
                )
            )
            task_created = True
            logger.debug("State %s", RunState.PROCESSING.value)

            response = await self._run_stages(query_id, task_id, raw_query, key)
        except Exception:
            logger.exception("Pipeline failed for query %s", query_id)
            await self._mark_failed(query_id, task_id if task_created else None)
            logger.debug("State %s", RunState.FAILED.value)
            raise
        finally:
            clear_context()

        logger.info(
            "Pipeline complete for %s: %d matches in %.2fs",
            query_id, len(response.matches), time.monotonic() - start,
        )
        await self._increment_match_counts(response.matches)
        return response

    async def _run_stages(
        self, query_id: str, task_id: str, raw_query: str, key: str
    ) -> SearchResponse:
        settings = self._settings
        analyst = RequirementAnalystAgent(
            query_id, self._store, self._llm_client,
            call_logger=self._call_logger,
            max_tokens=settings.llm_max_tokens,
            clock=self._clock,
        )
        retriever = CandidateRetrieverAgent(
            query_id, self._store, self._store, self._embeddings,
            num_candidates=settings.retriever_num_candidates,
            search_limit=settings.retriever_search_limit,
            result_limit=settings.retriever_result_limit,
            clock=self._clock,
        )
        verifier = CandidateVerifierAgent(query_id, self._store, clock=self._clock)
        ranker = RankerAgent(
            query_id, self._store, self._llm_client,
            call_logger=self._call_logger,
            top_n=settings.ranker_top_n,
            availability_bonus=settings.availability_bonus,
            temperature=settings.llm_temperature,
            clock=self._clock,
        )

        set_agent_context(analyst.name)
        requirements = await analyst.execute(raw_query)
        set_agent_context(retriever.name)
        candidates = await retriever.execute(
            RetrieverInput(requirements=requirements, raw_query=raw_query)
        )
        set_agent_context(verifier.name)
        verified = await verifier.execute(candidates)
        set_agent_context(ranker.name)
        matches = await ranker.execute(
            RankerInput(candidates=verified, raw_query=raw_query, requirements=requirements)
        )
        set_agent_context(None)

        completed_at = self._clock()
        await self._store.complete_query(
            query_id, requirements, [m.candidate.id for m in matches], completed_at
        )
        await self._store.update_task_status(task_id, "completed", completed_at)

        record = await self._store.get_query(query_id)
        response = SearchResponse(
            query_id=query_id,
            matches=matches,
            conversation=record.conversation if record else [],
        )
        await self._cache.put_result(
            ResultCacheEntry(
                query_hash=key,
                original_query=raw_query,
                result=response.model_dump(mode="json"),
                created_at=completed_at,
                expires_at=completed_at
                + timedelta(seconds=settings.result_cache_ttl_seconds),
            )
        )
        logger.debug("State %s", RunState.COMPLETED.value)
        return response

    def _replay(self, entry: ResultCacheEntry) -> SearchResponse:
        payload = SearchResponse.model_validate(entry.result)
        hit = ConversationEntry(
            agent=ORCHESTRATOR,
            message=CACHE_HIT_MESSAGE,
            timestamp=self._clock(),
        )
        return payload.model_copy(
            update={"conversation": [hit, *payload.conversation], "cached": True}
        )

    async def _mark_failed(self, query_id: str, task_id: str | None) -> None:
        try:
            await self._store.fail_query(query_id)
            if task_id is not None:
                await self._store.update_task_status(task_id, "failed", self._clock())
        except Exception as exc:
            logger.error("Could not mark %s as failed: %s", query_id, exc)

    async def _increment_match_counts(self, matches: list[MatchResult]) -> None:
        ids = [m.candidate.id for m in matches if m.candidate.id]
        if not ids:
            return
        try:
            await self._store.increment_match_count(ids)
        except Exception as exc:
            logger.warning("Could not update match counts: %s", exc)
