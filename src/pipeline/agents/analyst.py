# src/pipeline/agents/analyst.py — v1
"""Requirement analyst: turn a free-text query into a RequirementSet.

Asks the completion model for a JSON object. Any failure (provider error,
malformed JSON, wrong shape) falls back to a keyword heuristic, so this
stage always produces a usable RequirementSet.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from expertmesh.config.agents import ANALYST
from expertmesh.core.models import (
    Constraint,
    RequirementSet,
    SkillRequirement,
    utc_now,
)
from expertmesh.llm.models import Message
from expertmesh.pipeline.plugin_kit.base_agent import BaseAgent

if TYPE_CHECKING:
    from expertmesh.llm.base_client import BaseLLMClient
    from expertmesh.store.base_record_store import BaseRecordStore
    from expertmesh.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a query parser for an expert matching system.
Extract structured requirements from natural language queries.

Respond ONLY with valid JSON in this exact format:
{
  "skills": [{"name": "skill name", "weight": 0.8}],
  "constraints": [{"type": "renown", "value": "popular | hidden | rising | any"}],
  "intent": "technical_hire",
  "summary": "One sentence summary"
}
If the user asks for 'well-known', 'famous', or 'popular' people, set renown to 'popular'.
If the user asks for 'less-renowned', 'hidden', or 'unknown' people, set renown to 'hidden'."""

DEFAULT_INTENT = "technical_hire"
FALLBACK_WEIGHT = 0.8
FALLBACK_MAX_SKILLS = 3
STOP_WORDS = frozenset({
    "find", "need", "want", "looking", "expert",
    "developer", "professional", "professionals",
})
_EDGE_PUNCTUATION = ".,;:!?\"'()[]{}"


def heuristic_skills(raw_query: str) -> list[SkillRequirement]:
    """Keyword extraction used when the model output is unusable.

    Lowercases, splits on whitespace, drops short tokens and stop words,
    and keeps the first three, capitalized, at weight 0.8.
    """
    skills: list[SkillRequirement] = []
    for token in raw_query.lower().split():
        word = token.strip(_EDGE_PUNCTUATION)
        if len(word) <= 3 or word in STOP_WORDS:
            continue
        skills.append(
            SkillRequirement(name=word[0].upper() + word[1:], weight=FALLBACK_WEIGHT)
        )
        if len(skills) == FALLBACK_MAX_SKILLS:
            break
    return skills


def heuristic_requirements(raw_query: str) -> RequirementSet:
    """RequirementSet built without the model."""
    return RequirementSet(
        skills=tuple(heuristic_skills(raw_query)),
        constraints=(),
        intent=DEFAULT_INTENT,
        summary=raw_query,
    )


def _parse_response(content: str) -> Any:
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [ln for ln in lines if not ln.strip().startswith("```")]
        text = "\n".join(lines)
    return json.loads(text)


def _build_constraint(raw: Any) -> Constraint | None:
    if not isinstance(raw, dict):
        return None
    try:
        return Constraint(type=str(raw["type"]), value=str(raw["value"]))
    except (KeyError, ValidationError) as exc:
        logger.debug("Skipping malformed constraint: %s", exc)
        return None


def requirements_from_payload(parsed: Any, raw_query: str) -> RequirementSet:
    """Validate a parsed model payload field by field.

    A missing or malformed skills list is replaced by the heuristic skills;
    malformed constraints are dropped individually.

    Raises:
        ValueError: If the payload is not a JSON object.
    """
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected JSON object, got {type(parsed).__name__}")

    raw_skills = parsed.get("skills")
    skills: list[SkillRequirement] | None = None
    if isinstance(raw_skills, list):
        try:
            skills = [SkillRequirement.model_validate(s) for s in raw_skills]
        except ValidationError as exc:
            logger.warning("Model returned malformed skills, using heuristic: %s", exc)
    if skills is None:
        skills = heuristic_skills(raw_query)

    raw_constraints = parsed.get("constraints")
    constraints: list[Constraint] = []
    if isinstance(raw_constraints, list):
        for raw in raw_constraints:
            constraint = _build_constraint(raw)
            if constraint:
                constraints.append(constraint)

    intent = parsed.get("intent")
    summary = parsed.get("summary")
    return RequirementSet(
        skills=tuple(skills),
        constraints=tuple(constraints),
        intent=intent if isinstance(intent, str) and intent else DEFAULT_INTENT,
        summary=summary if isinstance(summary, str) and summary else raw_query,
    )


class RequirementAnalystAgent(BaseAgent):
    """Extract weighted skills and constraints from a raw query."""

    def __init__(
        self,
        query_id: str,
        record_store: BaseRecordStore,
        llm: BaseLLMClient,
        call_logger: CallLogger | None = None,
        max_tokens: int = 2048,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(query_id, record_store, clock)
        self._llm = llm
        self._call_logger = call_logger
        self._max_tokens = max_tokens

    @property
    def name(self) -> str:
        return ANALYST

    @property
    def description(self) -> str:
        return "Extract structured requirements from a natural language query"

    async def execute(self, inp: str) -> RequirementSet:
        return await self.analyze(inp)

    async def analyze(self, raw_query: str) -> RequirementSet:
        try:
            response = await self._llm.complete(
                messages=[Message(role="user", content=raw_query)],
                system=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=0.3,
                json_mode=True,
            )
            if self._call_logger is not None:
                self._call_logger.record(self.name, self.query_id, response)
            requirements = requirements_from_payload(
                _parse_response(response.content), raw_query
            )
        except Exception as exc:
            logger.warning("Requirement extraction fell back to heuristic: %s", exc)
            requirements = heuristic_requirements(raw_query)

        await self.log(
            f"Extracted {len(requirements.skills)} skills "
            f"and {len(requirements.constraints)} constraints",
            requirements.model_dump(mode="json"),
        )
        return requirements
