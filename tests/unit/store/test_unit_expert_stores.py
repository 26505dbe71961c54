# tests/unit/store/test_unit_expert_stores.py — v1
"""Behavioural tests shared by every profile/record store backend."""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from expertmesh.core.models import (
    ConversationEntry,
    QueryRecord,
    RequirementSet,
    SkillRequirement,
    TaskRecord,
)
from expertmesh.store.base_profile_store import DuplicateCandidateError
from expertmesh.store.base_record_store import RecordNotFoundError
from expertmesh.store.memory_store import InMemoryStore
from expertmesh.store.sqlite_store import SqliteStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryStore()
    else:
        s = SqliteStore(db_path=tmp_path / "experts.db")
    yield s
    s.close()


@pytest_asyncio.fixture
async def seeded(store, sample_candidates):
    await store.ensure_indexes()
    for c in sample_candidates:
        await store.add_candidate(c)
    return store


class TestProfiles:
    @pytest.mark.asyncio
    async def test_add_and_get(self, store, candidate_factory):
        candidate_id = await store.add_candidate(candidate_factory("Ada Lane", ["React"]))
        got = await store.get_candidate(candidate_id)
        assert got.name == "Ada Lane"
        assert got.skill_names == ["React"]

    @pytest.mark.asyncio
    async def test_generated_id(self, store, candidate_factory):
        candidate_id = await store.add_candidate(candidate_factory("Ada", ["Go"], id=""))
        assert candidate_id

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, store, candidate_factory):
        await store.ensure_indexes()
        await store.add_candidate(candidate_factory("Ada", ["Go"], email="a@x.io"))
        with pytest.raises(DuplicateCandidateError):
            await store.add_candidate(candidate_factory("Ada Two", ["Go"], email="a@x.io"))

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, seeded, sample_candidates):
        listed = await seeded.list_candidates()
        assert [c.name for c in listed] == [c.name for c in sample_candidates]
        assert len(await seeded.list_candidates(limit=2)) == 2
        assert await seeded.count() == 4

    @pytest.mark.asyncio
    async def test_list_by_ids(self, seeded):
        listed = await seeded.list_candidates(ids=["dev.rao", "nobody", "ada.lane"])
        assert [c.id for c in listed] == ["ada.lane", "dev.rao"]
        assert len(await seeded.list_candidates(limit=1, ids=["dev.rao", "ada.lane"])) == 1
        assert await seeded.list_candidates(ids=[]) == []

    @pytest.mark.asyncio
    async def test_missing_candidate(self, store):
        assert await store.get_candidate("nobody") is None

    @pytest.mark.asyncio
    async def test_increment_match_count(self, seeded):
        await seeded.increment_match_count(["ada.lane", "ada.lane", "ghost"])
        assert (await seeded.get_candidate("ada.lane")).match_count == 2


class TestVectorSearch:
    @pytest.mark.asyncio
    async def test_nearest_first(self, store, candidate_factory):
        await store.add_candidate(candidate_factory("A", ["x"], embedding=[1.0, 0.0]))
        await store.add_candidate(candidate_factory("B", ["x"], embedding=[0.0, 1.0]))
        await store.add_candidate(candidate_factory("C", ["x"], embedding=[0.7, 0.7]))
        hits = await store.vector_search([1.0, 0.1], num_candidates=100, limit=2)
        assert [h.candidate.name for h in hits] == ["A", "C"]
        assert hits[0].similarity > hits[1].similarity

    @pytest.mark.asyncio
    async def test_skips_mismatched_dimensions(self, store, candidate_factory):
        await store.add_candidate(candidate_factory("A", ["x"], embedding=[1.0, 0.0]))
        await store.add_candidate(candidate_factory("B", ["x"], embedding=[1.0, 0.0, 0.0]))
        hits = await store.vector_search([1.0, 0.0], num_candidates=10, limit=10)
        assert [h.candidate.name for h in hits] == ["A"]

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        assert await store.vector_search([1.0], num_candidates=10, limit=5) == []


class TestKeywordSearch:
    @pytest.mark.asyncio
    async def test_case_insensitive_skill_match(self, seeded):
        found = await seeded.keyword_search("kubernetes", limit=10)
        assert [c.name for c in found] == ["Cleo Park"]

    @pytest.mark.asyncio
    async def test_alternation_over_title_and_bio(self, seeded):
        found = await seeded.keyword_search("Pandas|design systems", limit=10)
        assert {c.name for c in found} == {"Ada Lane", "Dev Rao"}

    @pytest.mark.asyncio
    async def test_escaped_metacharacters(self, store, candidate_factory):
        await store.add_candidate(candidate_factory("Cy", ["C++"]))
        await store.add_candidate(candidate_factory("Cee", ["C"], bio="Embedded C."))
        found = await store.keyword_search(re.escape("C++"), limit=10)
        assert [c.name for c in found] == ["Cy"]

    @pytest.mark.asyncio
    async def test_none_pattern_matches_all(self, seeded):
        assert len(await seeded.keyword_search(None, limit=3)) == 3

    @pytest.mark.asyncio
    async def test_no_match(self, seeded):
        assert await seeded.keyword_search("Haskell", limit=10) == []


class TestRecords:
    @pytest.mark.asyncio
    async def test_query_lifecycle(self, store):
        await store.create_query(QueryRecord(query_id="query_1", raw_query="x", created_at=NOW))
        await store.append_conversation(
            "query_1", ConversationEntry(agent="analyst", message="one", data={"n": 1})
        )
        await store.append_conversation(
            "query_1", ConversationEntry(agent="retriever", message="two")
        )
        reqs = RequirementSet(skills=(SkillRequirement(name="Go", weight=1.0),))
        await store.complete_query("query_1", reqs, ["a", "b"], NOW)

        record = await store.get_query("query_1")
        assert record.status == "completed"
        assert record.results == ["a", "b"]
        assert record.parsed_requirements == reqs
        assert record.completed_at == NOW
        assert [e.message for e in record.conversation] == ["one", "two"]
        assert record.conversation[0].data == {"n": 1}

    @pytest.mark.asyncio
    async def test_fail_query(self, store):
        await store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
        await store.fail_query("query_1")
        assert (await store.get_query("query_1")).status == "failed"

    @pytest.mark.asyncio
    async def test_fail_unknown_query_is_logged_not_raised(self, store):
        await store.fail_query("query_missing")

    @pytest.mark.asyncio
    async def test_append_to_unknown_query(self, store):
        with pytest.raises(RecordNotFoundError):
            await store.append_conversation(
                "query_missing", ConversationEntry(agent="analyst", message="x")
            )

    @pytest.mark.asyncio
    async def test_task_lifecycle(self, store):
        await store.create_task(TaskRecord(
            task_id="task_1", query_id="query_1", agents=["analyst"], status="in_progress",
        ))
        await store.update_task_status("task_1", "completed", NOW)
        task = await store.get_task("task_1")
        assert task.status == "completed"
        assert task.completed_at == NOW
        assert task.agents == ["analyst"]

    @pytest.mark.asyncio
    async def test_update_missing_task(self, store):
        with pytest.raises(RecordNotFoundError):
            await store.update_task_status("task_missing", "failed")

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, store):
        await store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
        record = await store.get_query("query_1")
        record.status = "failed"
        assert (await store.get_query("query_1")).status == "processing"
