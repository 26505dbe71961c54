# src/pipeline/agents/retriever.py — v1
"""Candidate retriever: vector search with a keyword fallback.

Vector search embeds the raw query and applies the renown constraint as a
post-filter. If vector search raises, returns nothing, or the post-filter
empties the list, a keyword search over skills, title and bio is used
instead. The keyword path does not re-apply the renown filter.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel

from expertmesh.config.agents import RETRIEVER
from expertmesh.core.models import CandidateProfile, RequirementSet, utc_now
from expertmesh.pipeline.plugin_kit.base_agent import BaseAgent

if TYPE_CHECKING:
    from expertmesh.embeddings.gateway import EmbeddingGateway
    from expertmesh.store.base_profile_store import BaseProfileStore
    from expertmesh.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)

VECTOR_METHOD = "vector search"
KEYWORD_METHOD = "keyword search"

# Requested renown -> candidate renown levels kept by the post-filter.
RENOWN_FILTERS: dict[str, frozenset[str]] = {
    "popular": frozenset({"famous", "established"}),
    "hidden": frozenset({"hidden", "rising"}),
}


class RetrieverInput(BaseModel):
    """Input schema for the retriever."""

    requirements: RequirementSet
    raw_query: str


def keyword_pattern(requirements: RequirementSet) -> str | None:
    """Case-insensitive alternation of the requested skill names.

    None when no skills were extracted, meaning "match everything".
    """
    names = [s.name for s in requirements.skills]
    if not names:
        return None
    return "|".join(re.escape(n) for n in names)


def renown_filter(
    candidates: list[CandidateProfile], requirements: RequirementSet
) -> list[CandidateProfile]:
    """Keep candidates whose renown fits the renown constraint, if any."""
    constraint = requirements.constraint("renown")
    if constraint is None:
        return candidates
    allowed = RENOWN_FILTERS.get(constraint.value.strip().lower())
    if allowed is None:
        return candidates
    return [c for c in candidates if c.renown_level in allowed]


class CandidateRetrieverAgent(BaseAgent):
    """Fetch an initial candidate list for a RequirementSet."""

    def __init__(
        self,
        query_id: str,
        record_store: BaseRecordStore,
        profile_store: BaseProfileStore,
        embeddings: EmbeddingGateway,
        num_candidates: int = 100,
        search_limit: int = 20,
        result_limit: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(query_id, record_store, clock)
        self._profiles = profile_store
        self._embeddings = embeddings
        self._num_candidates = num_candidates
        self._search_limit = search_limit
        self._result_limit = result_limit

    @property
    def name(self) -> str:
        return RETRIEVER

    @property
    def description(self) -> str:
        return "Retrieve candidates by semantic similarity or keyword match"

    async def execute(self, inp: RetrieverInput) -> list[CandidateProfile]:
        return await self.retrieve(inp.requirements, inp.raw_query)

    async def retrieve(
        self, requirements: RequirementSet, raw_query: str
    ) -> list[CandidateProfile]:
        method = VECTOR_METHOD
        try:
            candidates = await self._vector_candidates(requirements, raw_query)
        except Exception as exc:
            logger.warning("Vector search failed, using keyword search: %s", exc)
            candidates = []

        if not candidates:
            method = KEYWORD_METHOD
            candidates = await self._profiles.keyword_search(
                keyword_pattern(requirements), self._result_limit
            )

        await self.log(
            f"Found {len(candidates)} candidates via {method}",
            {"count": len(candidates), "method": method},
        )
        return candidates

    async def _vector_candidates(
        self, requirements: RequirementSet, raw_query: str
    ) -> list[CandidateProfile]:
        vector = await self._embeddings.embed(raw_query)
        hits = await self._profiles.vector_search(
            vector, self._num_candidates, self._search_limit
        )
        candidates = [h.candidate for h in hits]
        filtered = renown_filter(candidates, requirements)
        if len(filtered) != len(candidates):
            logger.info(
                "Renown filter kept %d of %d candidates",
                len(filtered), len(candidates),
            )
        return filtered[: self._result_limit]
