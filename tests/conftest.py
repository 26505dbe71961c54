# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings, in-memory stores, a deterministic embedder, scripted
LLM clients and sample candidate profiles. No external services.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from expertmesh.cache.sqlite_store import SqliteCacheStore
from expertmesh.config.settings import Settings
from expertmesh.core.models import (
    Availability,
    CandidateProfile,
    RequirementSet,
    Skill,
    SkillRequirement,
)
from expertmesh.embeddings.base_embedder import BaseEmbedder
from expertmesh.embeddings.gateway import EmbeddingGateway
from expertmesh.llm.models import LLMResponse, Message
from expertmesh.logging.logger import ROOT_LOGGER
from expertmesh.store.memory_store import InMemoryStore

DIMS = 256


class VocabularyEmbedder(BaseEmbedder):
    """Bag-of-words embedder: texts sharing words point the same way.

    Each new word gets the next free dimension, so vectors are collision-free
    while the vocabulary stays under ``dims`` words.
    """

    def __init__(self, dims: int = DIMS) -> None:
        self._dims = dims
        self._vocab: dict[str, int] = {}
        self.calls: list[str] = []

    async def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self._dims
        for word in re.findall(r"[a-z0-9+#]+", text.lower()):
            idx = self._vocab.setdefault(word, len(self._vocab)) % self._dims
            vector[idx] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def provider_name(self) -> str:
        return "vocabulary"

    @property
    def model_name(self) -> str:
        return "vocabulary-test"


def make_response(content: str, input_tokens: int = 50, output_tokens: int = 20) -> LLMResponse:
    return LLMResponse(
        content=content,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        model="test-model",
        provider="test",
        latency_ms=10,
    )


def scripted_llm(requirements: dict[str, Any] | None = None) -> AsyncMock:
    """LLM mock answering JSON-mode calls with ``requirements`` and others with two lines."""

    async def _complete(
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> LLMResponse:
        if json_mode:
            return make_response(json.dumps(requirements or {}))
        return make_response("✅ Strong skill overlap\n\n✅ Relevant experience\n")

    llm = AsyncMock()
    llm.complete = AsyncMock(side_effect=_complete)
    return llm


def failing_llm(exc: Exception | None = None) -> AsyncMock:
    llm = AsyncMock()
    llm.complete = AsyncMock(side_effect=exc or RuntimeError("provider down"))
    return llm


def make_candidate(
    name: str,
    skills: list[str],
    renown: str | None = None,
    status: str = "available",
    bio: str = "",
    **kwargs: Any,
) -> CandidateProfile:
    slug = name.lower().replace(" ", ".")
    return CandidateProfile(
        id=kwargs.pop("id", slug),
        name=name,
        email=kwargs.pop("email", f"{slug}@example.com"),
        title=kwargs.pop("title", "Software Engineer"),
        bio=bio or f"{name} works with {', '.join(skills)}.",
        skills=[Skill(name=s, level="senior", years_exp=5) for s in skills],
        availability=Availability(status=status),
        renown_level=renown,
        **kwargs,
    )


# === FIXTURES: Configuration ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        llm_provider="openai",
        openai_api_key="",
        embedding_provider="none",
        embedding_dimensions=DIMS,
        store_backend="memory",
        store_path=tmp_path / "store.db",
        cache_backend="sqlite",
        cache_path=tmp_path / "cache.db",
    )


# === FIXTURES: Stores ===


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cache_store() -> SqliteCacheStore:
    store = SqliteCacheStore(db_path=":memory:")
    yield store
    store.close()


@pytest.fixture
def embedder() -> VocabularyEmbedder:
    return VocabularyEmbedder()


@pytest.fixture
def gateway(cache_store, embedder) -> EmbeddingGateway:
    return EmbeddingGateway(cache_store, embedder)


# === FIXTURES: Sample data ===


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_candidates() -> list[CandidateProfile]:
    return [
        make_candidate(
            "Ada Lane", ["React", "TypeScript", "Leadership"],
            renown="established", title="Frontend Lead",
            bio="Leads a React team building design systems.",
            github="https://github.com/adalane",
        ),
        make_candidate(
            "Ben Ortiz", ["React", "GraphQL"],
            renown="rising", title="Frontend Engineer",
            bio="React engineer focused on data fetching.",
        ),
        make_candidate(
            "Cleo Park", ["Kubernetes", "Go"],
            renown="famous", status="busy", title="Platform Engineer",
            bio="Runs Kubernetes clusters at scale.",
            linkedin="https://linkedin.com/in/cleopark",
        ),
        make_candidate(
            "Dev Rao", ["Python", "Pandas"],
            renown="hidden", title="Data Engineer",
            bio="Builds Python data pipelines.",
        ),
    ]


@pytest.fixture
def react_requirements() -> RequirementSet:
    return RequirementSet(
        skills=(
            SkillRequirement(name="React", weight=1.0),
            SkillRequirement(name="Leadership", weight=0.8),
        ),
        intent="technical_hire",
        summary="React developer with leadership",
    )


# === FIXTURES: Factories ===


@pytest.fixture
def candidate_factory():
    return make_candidate


@pytest.fixture
def llm_factory():
    return scripted_llm


@pytest.fixture
def broken_llm() -> AsyncMock:
    return failing_llm()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by setup_logging so they never outlive a test."""
    yield
    logging.getLogger(ROOT_LOGGER).handlers.clear()
