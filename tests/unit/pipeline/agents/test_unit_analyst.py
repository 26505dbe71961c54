# tests/unit/pipeline/agents/test_unit_analyst.py — v1
"""Tests for RequirementAnalystAgent and its heuristic fallback."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from expertmesh.core.models import QueryRecord, SkillRequirement
from expertmesh.llm.models import LLMResponse
from expertmesh.pipeline.agents.analyst import (
    RequirementAnalystAgent,
    heuristic_requirements,
    heuristic_skills,
    requirements_from_payload,
)
from expertmesh.tracking.call_logger import CallLogger


def _llm(content: str) -> AsyncMock:
    llm = AsyncMock()
    llm.complete = AsyncMock(return_value=LLMResponse(
        content=content, input_tokens=80, output_tokens=40,
        model="test", provider="test", latency_ms=5,
    ))
    return llm


@pytest_asyncio.fixture
async def records(memory_store):
    await memory_store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
    return memory_store


class TestHeuristic:
    def test_kubernetes_expert(self):
        assert heuristic_skills("Kubernetes expert") == [
            SkillRequirement(name="Kubernetes", weight=0.8)
        ]

    def test_drops_stop_words_and_short_tokens(self):
        names = [s.name for s in heuristic_skills("Find me a senior Python developer for data work")]
        assert names == ["Senior", "Python", "Data"]

    def test_strips_punctuation(self):
        names = [s.name for s in heuristic_skills("Need Rust, Go and Terraform!")]
        assert names == ["Rust", "Terraform"]

    def test_no_usable_tokens(self):
        assert heuristic_skills("find an expert") == []

    def test_requirements_shape(self):
        reqs = heuristic_requirements("Kubernetes expert")
        assert reqs.constraints == ()
        assert reqs.intent == "technical_hire"
        assert reqs.summary == "Kubernetes expert"


class TestPayloadValidation:
    def test_full_payload(self):
        reqs = requirements_from_payload({
            "skills": [{"name": "React", "weight": 0.9}],
            "constraints": [{"type": "renown", "value": "popular"}],
            "intent": "consulting",
            "summary": "React consultant",
        }, "raw")
        assert reqs.skills[0].name == "React"
        assert reqs.constraint("renown").value == "popular"
        assert reqs.intent == "consulting"

    def test_missing_fields_default(self):
        reqs = requirements_from_payload({"skills": []}, "Kubernetes expert")
        assert reqs.skills == ()
        assert reqs.intent == "technical_hire"
        assert reqs.summary == "Kubernetes expert"

    def test_skills_not_a_list(self):
        reqs = requirements_from_payload(
            {"skills": "React", "constraints": [{"type": "renown", "value": "hidden"}]},
            "Kubernetes expert",
        )
        assert [s.name for s in reqs.skills] == ["Kubernetes"]
        assert reqs.constraint("renown").value == "hidden"

    def test_invalid_skill_weight_uses_heuristic(self):
        reqs = requirements_from_payload(
            {"skills": [{"name": "React", "weight": 5}]}, "Kubernetes expert"
        )
        assert [s.name for s in reqs.skills] == ["Kubernetes"]

    def test_malformed_constraint_dropped(self):
        reqs = requirements_from_payload(
            {"skills": [], "constraints": ["popular", {"type": "renown"}, {"type": "renown", "value": "hidden"}]},
            "raw",
        )
        assert len(reqs.constraints) == 1

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            requirements_from_payload(["React"], "raw")


class TestAnalystAgent:
    def test_properties(self, memory_store):
        agent = RequirementAnalystAgent("query_1", memory_store, _llm("{}"))
        assert agent.name == "analyst"
        assert agent.version == "1.0.0"

    @pytest.mark.asyncio
    async def test_model_output_used(self, records):
        llm = _llm(json.dumps({
            "skills": [{"name": "React", "weight": 1.0}, {"name": "Leadership", "weight": 0.7}],
            "constraints": [],
            "intent": "technical_hire",
            "summary": "React lead",
        }))
        agent = RequirementAnalystAgent("query_1", records, llm)
        reqs = await agent.execute("React developer who can lead a team")

        assert [s.name for s in reqs.skills] == ["React", "Leadership"]
        call = llm.complete.call_args.kwargs
        assert call["json_mode"] is True
        assert call["temperature"] == 0.3

        record = await records.get_query("query_1")
        assert len(record.conversation) == 1
        entry = record.conversation[0]
        assert entry.agent == "analyst"
        assert "2 skills" in entry.message
        assert entry.data["summary"] == "React lead"

    @pytest.mark.asyncio
    async def test_fenced_json(self, records):
        llm = _llm('```json\n{"skills": [{"name": "Go", "weight": 0.5}]}\n```')
        reqs = await RequirementAnalystAgent("query_1", records, llm).analyze("Go")
        assert reqs.skills[0].name == "Go"

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self, records, broken_llm):
        reqs = await RequirementAnalystAgent("query_1", records, broken_llm).analyze(
            "Kubernetes expert"
        )
        assert reqs.skills == (SkillRequirement(name="Kubernetes", weight=0.8),)
        record = await records.get_query("query_1")
        assert len(record.conversation) == 1

    @pytest.mark.asyncio
    async def test_non_json_falls_back(self, records):
        reqs = await RequirementAnalystAgent("query_1", records, _llm("Sure! React.")).analyze(
            "Kubernetes expert"
        )
        assert [s.name for s in reqs.skills] == ["Kubernetes"]

    @pytest.mark.asyncio
    async def test_call_logged(self, records):
        call_logger = CallLogger()
        agent = RequirementAnalystAgent("query_1", records, _llm("{}"), call_logger=call_logger)
        await agent.analyze("Go")
        assert call_logger.records_for("query_1")[0].agent == "analyst"
