# src/pipeline/answerer.py — v1
"""Answer mode: retrieve profiles, then have the LLM write a short answer.

Retrieval embeds the query without the random-vector fallback. When the
query cannot be embedded, vector search fails, or it finds nothing, a
keyword search over skills, title and bio is used instead. A failed
completion degrades to a one-line summary of the hits. No query or task
records are written and nothing is cached.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import TYPE_CHECKING

from expertmesh.config.agents import ANSWERER
from expertmesh.core.models import (
    AnswerExpert,
    AnswerResponse,
    CandidateProfile,
    RetrievalMethod,
)
from expertmesh.embeddings.gateway import EmbeddingUnavailableError
from expertmesh.llm.models import Message

if TYPE_CHECKING:
    from expertmesh.embeddings.gateway import EmbeddingGateway
    from expertmesh.llm.base_client import BaseLLMClient
    from expertmesh.store.base_profile_store import BaseProfileStore
    from expertmesh.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

# Score reported for keyword hits, which carry no similarity.
KEYWORD_MATCH_SCORE = 0.5

STOP_WORDS = frozenset({
    "find", "get", "the", "and", "for", "with", "who", "can",
    "expert", "developer", "engineer",
})

SYSTEM_PROMPT = """You are an expert matching assistant for ExpertMesh.
Based on the retrieved expert profiles, provide a helpful response to the user's query.
Be concise, highlight the top matches, and explain why they're relevant.

Retrieved Expert Profiles:
{context}"""

USER_PROMPT = """User Query: "{query}"

Based on the experts above, provide:
1. A brief summary of who best matches this query and why
2. Key skills that make them relevant
3. Any notable achievements or background

Keep your response concise (2-3 paragraphs max)."""


def new_answer_id() -> str:
    return f"answer_{uuid.uuid4().hex[:8]}"


def answer_keyword_pattern(query: str) -> str | None:
    """Alternation of the query's content words; None matches every profile."""
    words = [
        w for w in query.lower().split()
        if len(w) > 2 and w not in STOP_WORDS
    ]
    if not words:
        return None
    return "|".join(re.escape(w) for w in words)


def build_context(candidates: list[CandidateProfile]) -> str:
    """Numbered profile blocks handed to the LLM as grounding."""
    blocks = []
    for i, c in enumerate(candidates, start=1):
        skills = ", ".join(c.skill_names) or "various skills"
        blocks.append(
            f"Expert {i}: {c.name}\n"
            f"Title: {c.title}\n"
            f"Skills: {skills}\n"
            f"Bio: {c.bio or 'No bio available'}\n"
            f"GitHub: {c.github or 'N/A'}"
        )
    return "\n\n".join(blocks)


def fallback_answer(query: str, candidates: list[CandidateProfile]) -> str:
    top = candidates[0].name if candidates else "No matches found"
    return f'Found {len(candidates)} matching experts for "{query}". Top match: {top}.'


class ExpertAnswerer:
    """Retrieval plus LLM write-up over the matching profiles.

    Args:
        profile_store: Store searched for profiles.
        embeddings: Cached embedding gateway.
        llm: Completion client writing the answer.
        call_logger: Optional LLM usage tracker.
        num_candidates: Vector search pool size.
        temperature: Completion temperature.
        max_tokens: Completion length cap.
    """

    def __init__(
        self,
        profile_store: BaseProfileStore,
        embeddings: EmbeddingGateway,
        llm: BaseLLMClient,
        call_logger: CallLogger | None = None,
        num_candidates: int = 100,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> None:
        self._profiles = profile_store
        self._embeddings = embeddings
        self._llm = llm
        self._call_logger = call_logger
        self._num_candidates = num_candidates
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def answer(
        self, query: str, top_k: int = 5, include_context: bool = False
    ) -> AnswerResponse:
        answer_id = new_answer_id()
        hits, method = await self._retrieve(query, top_k)
        candidates = [c for c, _ in hits]
        context = build_context(candidates)
        text = await self._write(answer_id, query, context, candidates)
        return AnswerResponse(
            answer_id=answer_id,
            query=query,
            answer=text,
            experts=[
                AnswerExpert(
                    id=c.id,
                    name=c.name,
                    title=c.title,
                    skills=c.skill_names,
                    match_score=score,
                    bio=c.bio,
                    github=c.github,
                )
                for c, score in hits
            ],
            retrieval_method=method,
            context=context if include_context else None,
        )

    async def _retrieve(
        self, query: str, top_k: int
    ) -> tuple[list[tuple[CandidateProfile, float]], RetrievalMethod]:
        try:
            vector = await self._embeddings.embed(query, fallback=False)
        except EmbeddingUnavailableError as exc:
            logger.warning("Embedding failed, falling back to keyword search: %s", exc)
        else:
            try:
                scored = await self._profiles.vector_search(
                    vector, max(self._num_candidates, top_k), top_k
                )
            except Exception as exc:
                logger.warning("Vector search failed, falling back to keyword search: %s", exc)
            else:
                if scored:
                    logger.info("Found %d profiles via vector search", len(scored))
                    return [(s.candidate, s.similarity) for s in scored], "vector"

        candidates = await self._profiles.keyword_search(
            answer_keyword_pattern(query), top_k
        )
        logger.info("Found %d profiles via keyword search", len(candidates))
        return [(c, KEYWORD_MATCH_SCORE) for c in candidates], "keyword"

    async def _write(
        self,
        answer_id: str,
        query: str,
        context: str,
        candidates: list[CandidateProfile],
    ) -> str:
        try:
            response = await self._llm.complete(
                messages=[Message(role="user", content=USER_PROMPT.format(query=query))],
                system=SYSTEM_PROMPT.format(context=context),
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as exc:
            logger.warning("Answer generation failed, using summary: %s", exc)
            return fallback_answer(query, candidates)
        if self._call_logger is not None:
            self._call_logger.record(ANSWERER, answer_id, response)
        return response.content.strip() or fallback_answer(query, candidates)
