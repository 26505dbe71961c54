# tests/unit/pipeline/test_unit_base_agent.py — v2
"""Tests for pipeline/plugin_kit/base_agent.py."""

from __future__ import annotations

import pytest

from expertmesh.core.models import QueryRecord
from expertmesh.pipeline.plugin_kit.base_agent import BaseAgent


class EchoAgent(BaseAgent):
    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echo input"

    async def execute(self, inp):
        await self.log(f"echo {inp}", {"value": inp})
        return inp


class TestBaseAgent:
    def test_cannot_instantiate(self, memory_store):
        with pytest.raises(TypeError):
            BaseAgent("query_1", memory_store)  # type: ignore[abstract]

    def test_defaults(self, memory_store):
        agent = EchoAgent("query_1", memory_store)
        assert agent.version == "1.0.0"
        assert agent.query_id == "query_1"

    @pytest.mark.asyncio
    async def test_log_appends_entry(self, memory_store):
        await memory_store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
        agent = EchoAgent("query_1", memory_store)
        assert await agent.execute(7) == 7
        record = await memory_store.get_query("query_1")
        assert len(record.conversation) == 1
        entry = record.conversation[0]
        assert entry.agent == "echo"
        assert entry.message == "echo 7"
        assert entry.data == {"value": 7}

    @pytest.mark.asyncio
    async def test_log_uses_injected_clock(self, memory_store, fixed_now):
        await memory_store.create_query(QueryRecord(query_id="query_1", raw_query="x"))
        agent = EchoAgent("query_1", memory_store, clock=lambda: fixed_now)
        entry = await agent.log("tick")
        assert entry.timestamp == fixed_now
        record = await memory_store.get_query("query_1")
        assert record.conversation[0].timestamp == fixed_now
