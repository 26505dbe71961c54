# src/pipeline/agents/ranker.py — v1
"""Ranker: score, explain and order verified candidates.

Score is a linear blend clamped to [0, 1]:
    min(1, 0.7 * skill_match + 0.3 * renown_match + availability_bonus)

Only the first ``top_n`` candidates are scored, which bounds the number
of explanation calls per query. Explanation failures yield an empty
reasoning list; they never drop a candidate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel

from expertmesh.config.agents import RANKER
from expertmesh.core.models import (
    CandidateProfile,
    MatchResult,
    RequirementSet,
    utc_now,
)
from expertmesh.llm.models import Message
from expertmesh.pipeline.plugin_kit.base_agent import BaseAgent

if TYPE_CHECKING:
    from expertmesh.llm.base_client import BaseLLMClient
    from expertmesh.store.base_record_store import BaseRecordStore
    from expertmesh.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

SKILL_WEIGHT = 0.7
RENOWN_WEIGHT = 0.3
NEUTRAL_MATCH = 0.5

# Requested renown -> (score per candidate renown, score for anything else).
RENOWN_TABLE: dict[str, tuple[dict[str, float], float]] = {
    "popular": ({"famous": 1.0, "established": 0.8, "rising": 0.4}, 0.1),
    "hidden": ({"hidden": 1.0, "rising": 0.7}, 0.2),
}

EXPLANATION_PROMPT = """You are explaining why an expert matches a query.
Generate 2-3 bullet points explaining the match.
Be specific and reference both the query requirements and expert skills.
Start each point with an emoji (✅ for match, ⚠️ for partial)."""


class RankerInput(BaseModel):
    """Input schema for the ranker."""

    candidates: list[CandidateProfile]
    raw_query: str
    requirements: RequirementSet


def skill_match(candidate: CandidateProfile, requirements: RequirementSet) -> float:
    """Share of requirement weight covered by the candidate's skills."""
    if not requirements.skills:
        return NEUTRAL_MATCH
    held = {name.lower() for name in candidate.skill_names}
    total = sum(s.weight for s in requirements.skills)
    matched = sum(s.weight for s in requirements.skills if s.name.lower() in held)
    return matched / total if total > 0 else NEUTRAL_MATCH


def renown_match(candidate: CandidateProfile, requirements: RequirementSet) -> float:
    """Fixed-table fit between requested and actual renown.

    Candidates without a renown level count as "hidden".
    """
    constraint = requirements.constraint("renown")
    if constraint is None:
        return NEUTRAL_MATCH
    row = RENOWN_TABLE.get(constraint.value.strip().lower())
    if row is None:
        return NEUTRAL_MATCH
    scores, otherwise = row
    return scores.get(candidate.renown_level or "hidden", otherwise)


def match_score(
    candidate: CandidateProfile,
    requirements: RequirementSet,
    availability_bonus: float = 0.1,
) -> float:
    bonus = availability_bonus if candidate.is_available else 0.0
    raw = (
        SKILL_WEIGHT * skill_match(candidate, requirements)
        + RENOWN_WEIGHT * renown_match(candidate, requirements)
        + bonus
    )
    return max(0.0, min(1.0, raw))


def matched_skills(
    candidate: CandidateProfile, requirements: RequirementSet
) -> list[str]:
    wanted = {s.name.lower() for s in requirements.skills}
    return [name for name in candidate.skill_names if name.lower() in wanted]


class RankerAgent(BaseAgent):
    """Score the leading candidates and attach short justifications."""

    def __init__(
        self,
        query_id: str,
        record_store: BaseRecordStore,
        llm: BaseLLMClient,
        call_logger: CallLogger | None = None,
        top_n: int = 5,
        availability_bonus: float = 0.1,
        temperature: float = 0.7,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(query_id, record_store, clock)
        self._llm = llm
        self._call_logger = call_logger
        self._top_n = top_n
        self._availability_bonus = availability_bonus
        self._temperature = temperature

    @property
    def name(self) -> str:
        return RANKER

    @property
    def description(self) -> str:
        return "Score candidates against requirements and explain each match"

    async def execute(self, inp: RankerInput) -> list[MatchResult]:
        return await self.rank(inp.candidates, inp.raw_query, inp.requirements)

    async def rank(
        self,
        candidates: list[CandidateProfile],
        raw_query: str,
        requirements: RequirementSet,
    ) -> list[MatchResult]:
        matches: list[MatchResult] = []
        for candidate in candidates[: self._top_n]:
            score = match_score(candidate, requirements, self._availability_bonus)
            reasoning = await self._explain(raw_query, candidate, requirements, score)
            matches.append(
                MatchResult(
                    candidate=candidate.without_embedding(),
                    score=score,
                    reasoning=reasoning,
                    matched_by=self.name,
                )
            )

        # sorted() is stable, so equal scores keep retrieval order.
        matches = sorted(matches, key=lambda m: m.score, reverse=True)

        top = matches[0].candidate.name if matches else "none"
        await self.log(
            f"Ranked {len(matches)} candidates, top match: {top}",
            {"count": len(matches), "top_match": top},
        )
        return matches

    async def _explain(
        self,
        raw_query: str,
        candidate: CandidateProfile,
        requirements: RequirementSet,
        score: float,
    ) -> list[str]:
        prompt = (
            f'Query: "{raw_query}"\n\n'
            f"Expert: {candidate.name}, {candidate.title}\n"
            f"Skills: {', '.join(candidate.skill_names)}\n"
            f"Matched skills: {', '.join(matched_skills(candidate, requirements)) or 'none'}\n"
            f"Match Score: {score * 100:.0f}%"
        )
        try:
            response = await self._llm.complete(
                messages=[Message(role="user", content=prompt)],
                system=EXPLANATION_PROMPT,
                temperature=self._temperature,
            )
        except Exception as exc:
            logger.warning("Explanation failed for %s: %s", candidate.name, exc)
            return []
        if self._call_logger is not None:
            self._call_logger.record(self.name, self.query_id, response)
        return [line.strip() for line in response.content.split("\n") if line.strip()]
