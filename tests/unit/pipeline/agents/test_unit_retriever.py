# tests/unit/pipeline/agents/test_unit_retriever.py — v1
"""Tests for CandidateRetrieverAgent: vector path, renown filter, keyword fallback."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from expertmesh.core.models import (
    Constraint,
    QueryRecord,
    RequirementSet,
    SkillRequirement,
)
from expertmesh.pipeline.agents.retriever import (
    KEYWORD_METHOD,
    VECTOR_METHOD,
    CandidateRetrieverAgent,
    RetrieverInput,
    keyword_pattern,
    renown_filter,
)


def _reqs(*skills: str, renown: str | None = None) -> RequirementSet:
    return RequirementSet(
        skills=tuple(SkillRequirement(name=s, weight=1.0) for s in skills),
        constraints=(Constraint(type="renown", value=renown),) if renown else (),
    )


@pytest_asyncio.fixture
async def store(memory_store, sample_candidates, embedder):
    await memory_store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
    for c in sample_candidates:
        vector = await embedder.embed_query(f"{c.title} {c.bio} {' '.join(c.skill_names)}")
        await memory_store.add_candidate(c.model_copy(update={"embedding": vector}))
    return memory_store


def _agent(store, gateway, **kwargs) -> CandidateRetrieverAgent:
    return CandidateRetrieverAgent("query_1", store, store, gateway, **kwargs)


async def _last_entry(store):
    return (await store.get_query("query_1")).conversation[-1]


class TestHelpers:
    def test_keyword_pattern_escapes(self):
        assert keyword_pattern(_reqs("C++", "Node.js")) == r"C\+\+|Node\.js"

    def test_keyword_pattern_none_without_skills(self):
        assert keyword_pattern(_reqs()) is None

    def test_renown_filter_popular(self, sample_candidates):
        kept = renown_filter(sample_candidates, _reqs(renown="Popular"))
        assert {c.renown_level for c in kept} == {"famous", "established"}

    def test_renown_filter_hidden(self, sample_candidates):
        kept = renown_filter(sample_candidates, _reqs(renown="hidden"))
        assert {c.renown_level for c in kept} == {"hidden", "rising"}

    def test_renown_filter_other_values_pass_through(self, sample_candidates):
        assert renown_filter(sample_candidates, _reqs(renown="any")) == sample_candidates


class TestVectorPath:
    @pytest.mark.asyncio
    async def test_vector_search(self, store, gateway):
        found = await _agent(store, gateway).execute(
            RetrieverInput(requirements=_reqs("Kubernetes"), raw_query="Kubernetes platform engineer")
        )
        assert found[0].name == "Cleo Park"
        entry = await _last_entry(store)
        assert entry.agent == "retriever"
        assert entry.data == {"count": len(found), "method": VECTOR_METHOD}

    @pytest.mark.asyncio
    async def test_result_limit(self, store, gateway):
        found = await _agent(store, gateway, result_limit=2).retrieve(_reqs("React"), "React")
        assert len(found) == 2

    @pytest.mark.asyncio
    async def test_renown_post_filter(self, store, gateway):
        found = await _agent(store, gateway).retrieve(
            _reqs("React", renown="popular"), "famous React engineer"
        )
        assert found
        assert all(c.renown_level in {"famous", "established"} for c in found)


class TestKeywordFallback:
    @pytest.mark.asyncio
    async def test_vector_error_falls_back(self, store, gateway):
        store.vector_search = AsyncMock(side_effect=RuntimeError("index missing"))
        found = await _agent(store, gateway).retrieve(_reqs("Python"), "Python data")
        assert [c.name for c in found] == ["Dev Rao"]
        assert (await _last_entry(store)).data["method"] == KEYWORD_METHOD

    @pytest.mark.asyncio
    async def test_no_vector_hits_falls_back(self, memory_store, gateway, candidate_factory):
        await memory_store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
        await memory_store.add_candidate(candidate_factory("Ada", ["React"]))
        found = await _agent(memory_store, gateway).retrieve(_reqs("react"), "react")
        assert [c.name for c in found] == ["Ada"]
        assert (await _last_entry(memory_store)).data["method"] == KEYWORD_METHOD

    @pytest.mark.asyncio
    async def test_empty_post_filter_falls_back_without_renown(
        self, memory_store, gateway, embedder, candidate_factory
    ):
        await memory_store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
        hidden = candidate_factory("Hana", ["Go"], renown="hidden")
        vector = await embedder.embed_query("Go")
        await memory_store.add_candidate(hidden.model_copy(update={"embedding": vector}))

        found = await _agent(memory_store, gateway).retrieve(_reqs("Go", renown="popular"), "Go")
        assert [c.name for c in found] == ["Hana"]
        assert (await _last_entry(memory_store)).data["method"] == KEYWORD_METHOD

    @pytest.mark.asyncio
    async def test_no_skills_matches_everything(self, store, gateway):
        store.vector_search = AsyncMock(return_value=[])
        found = await _agent(store, gateway, result_limit=3).retrieve(_reqs(), "anyone")
        assert len(found) == 3

    @pytest.mark.asyncio
    async def test_nothing_found(self, store, gateway):
        store.vector_search = AsyncMock(return_value=[])
        found = await _agent(store, gateway).retrieve(_reqs("Haskell"), "Haskell")
        assert found == []
        assert "Found 0 candidates" in (await _last_entry(store)).message
