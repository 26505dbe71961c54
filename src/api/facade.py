# src/api/facade.py — v2
"""Public API facade: build services, search, answer, ingest and maintain stores.

Usage:
    from expertmesh.api.facade import create_services, search
    services = await create_services()
    response = await search("React developer who can lead a team", services)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from expertmesh.api.models import (
    AnswerRequest,
    IngestReport,
    SearchRequest,
    SetupReport,
)
from expertmesh.cache.cache_factory import create_cache_store
from expertmesh.config.settings import Settings
from expertmesh.core.models import (
    AnswerResponse,
    CandidateProfile,
    SearchResponse,
    utc_now,
)
from expertmesh.embeddings.embedder_factory import create_embedder
from expertmesh.embeddings.gateway import EmbeddingGateway
from expertmesh.llm.client_factory import create_llm_client
from expertmesh.pipeline.answerer import ExpertAnswerer
from expertmesh.pipeline.orchestrator import InvalidQueryError, PipelineOrchestrator
from expertmesh.store.base_profile_store import DuplicateCandidateError
from expertmesh.store.store_factory import create_store
from expertmesh.tracking.call_logger import CallLogger

if TYPE_CHECKING:
    from expertmesh.cache.base_cache_store import BaseCacheStore
    from expertmesh.embeddings.base_embedder import BaseEmbedder
    from expertmesh.llm.base_client import BaseLLMClient
    from expertmesh.store.base_store import BaseExpertStore

logger = logging.getLogger(__name__)

_FROM_SETTINGS: Any = object()


@dataclass
class Services:
    """Everything one process needs to serve searches."""

    settings: Settings
    store: BaseExpertStore
    cache_store: BaseCacheStore
    embeddings: EmbeddingGateway
    llm_client: BaseLLMClient
    call_logger: CallLogger
    orchestrator: PipelineOrchestrator

    def close(self) -> None:
        self.store.close()
        self.cache_store.close()


async def create_services(
    settings: Settings | None = None,
    store: BaseExpertStore | None = None,
    cache_store: BaseCacheStore | None = None,
    embedder: BaseEmbedder | None = _FROM_SETTINGS,
    llm_client: BaseLLMClient | None = None,
) -> Services:
    """Build stores and clients and provision indexes.

    Args:
        settings: Global settings. Loaded from .env if None.
        store: Profile/record store. Built from settings if None.
        cache_store: Cache backend. Built from settings if None.
        embedder: Embedding provider. Built from settings when omitted;
            an explicit None runs the gateway in degraded mode.
        llm_client: Completion client. Built from settings if None.
    """
    settings = settings or Settings()
    store = store or create_store(settings)
    cache_store = cache_store or create_cache_store(settings)
    if embedder is _FROM_SETTINGS:
        embedder = create_embedder(settings)
    llm_client = llm_client or create_llm_client(settings)

    await store.ensure_indexes()
    await cache_store.ensure_indexes()

    embeddings = EmbeddingGateway(
        cache_store, embedder, dimensions=settings.embedding_dimensions
    )
    call_logger = CallLogger(max_records=settings.call_log_max_records)
    orchestrator = PipelineOrchestrator(
        settings=settings,
        store=store,
        cache_store=cache_store,
        embeddings=embeddings,
        llm_client=llm_client,
        call_logger=call_logger,
    )
    return Services(
        settings=settings,
        store=store,
        cache_store=cache_store,
        embeddings=embeddings,
        llm_client=llm_client,
        call_logger=call_logger,
        orchestrator=orchestrator,
    )


async def search(query: str | SearchRequest, services: Services) -> SearchResponse:
    """Validate a query and run it through the orchestrator.

    Raises:
        InvalidQueryError: If the query is missing or blank.
    """
    if isinstance(query, SearchRequest):
        request = query
    else:
        try:
            request = SearchRequest(query=query)
        except ValidationError as e:
            raise InvalidQueryError("Query is required") from e
    return await services.orchestrator.process_query(request.query)


async def answer(
    query: str | AnswerRequest,
    services: Services,
    top_k: int | None = None,
    include_context: bool = False,
) -> AnswerResponse:
    """Retrieve matching profiles and have the LLM write a short answer.

    Args:
        query: Free-text question, or a prepared AnswerRequest.
        services: Wired services.
        top_k: Profiles to retrieve. Defaults to ANSWER_TOP_K.
        include_context: Return the profile context given to the LLM.

    Raises:
        InvalidQueryError: If the query is blank or top_k is not positive.
    """
    settings = services.settings
    if isinstance(query, AnswerRequest):
        request = query
    else:
        try:
            request = AnswerRequest(
                query=query,
                top_k=settings.answer_top_k if top_k is None else top_k,
                include_context=include_context,
            )
        except ValidationError as e:
            raise InvalidQueryError(f"Invalid answer request: {e}") from e

    answerer = ExpertAnswerer(
        services.store,
        services.embeddings,
        services.llm_client,
        call_logger=services.call_logger,
        num_candidates=settings.retriever_num_candidates,
        temperature=settings.llm_temperature,
        max_tokens=settings.answer_max_tokens,
    )
    return await answerer.answer(
        request.query, top_k=request.top_k, include_context=request.include_context
    )


def build_profile_text(profile: CandidateProfile) -> str:
    """Text representation embedded for a candidate profile."""
    skills_text = ", ".join(
        f"{s.name} ({s.level}, {s.years_exp:g} years)" for s in profile.skills
    )
    return f"{profile.name}, {profile.title}\n{profile.bio}\nSkills: {skills_text}"


async def ingest_candidates(
    profiles: list[CandidateProfile | dict[str, Any]],
    services: Services,
) -> IngestReport:
    """Embed and insert profiles; duplicates are skipped, not fatal."""
    report = IngestReport()
    for raw in profiles:
        try:
            profile = (
                raw if isinstance(raw, CandidateProfile)
                else CandidateProfile.model_validate(raw)
            )
        except ValidationError as e:
            logger.warning("Skipping invalid profile: %s", e)
            report.errors += 1
            continue

        if not profile.embedding:
            vector = await services.embeddings.embed(build_profile_text(profile))
            profile = profile.model_copy(update={"embedding": vector})
        try:
            candidate_id = await services.store.add_candidate(profile)
        except DuplicateCandidateError as e:
            logger.info("Skipping duplicate profile %s: %s", profile.name, e)
            report.skipped.append(profile.email or profile.id or profile.name)
            continue
        report.inserted.append(candidate_id)

    logger.info(
        "Ingested %d profiles (%d skipped, %d invalid)",
        len(report.inserted), len(report.skipped), report.errors,
    )
    return report


async def list_candidates(
    services: Services,
    limit: int | None = None,
    ids: list[str] | None = None,
) -> list[CandidateProfile]:
    """Stored profiles in insertion order, without embeddings.

    A non-empty ``ids`` restricts the listing to those profiles; blank ids
    are dropped and an empty selection lists everything.
    """
    wanted = [i for i in ids or [] if i] or None
    candidates = await services.store.list_candidates(limit, ids=wanted)
    return [c.without_embedding() for c in candidates]


async def setup(services: Services) -> SetupReport:
    """Provision indexes on every store and report what is configured."""
    await services.store.ensure_indexes()
    await services.cache_store.ensure_indexes()
    return SetupReport(
        store_backend=services.settings.store_backend,
        cache_backend=services.settings.cache_backend,
        candidate_count=await services.store.count(),
    )


async def purge_cache(services: Services) -> int:
    """Delete expired result cache entries; returns how many were removed."""
    removed = await services.cache_store.purge_expired(utc_now())
    logger.info("Purged %d expired result cache entries", removed)
    return removed
