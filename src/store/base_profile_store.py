# src/store/base_profile_store.py — v1
"""Abstract candidate profile store interface."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from expertmesh.core.models import CandidateProfile, ScoredCandidate


class DuplicateCandidateError(ValueError):
    """Raised when inserting a candidate whose id or email already exists."""


class BaseProfileStore(ABC):
    """Searchable store of candidate profiles."""

    async def ensure_indexes(self) -> None:
        """Provision indexes. Called once at startup."""

    @abstractmethod
    async def add_candidate(self, candidate: CandidateProfile) -> str:
        """Insert a profile and return its id (generated when empty).

        Raises:
            DuplicateCandidateError: If the id or a non-empty email exists.
        """

    @abstractmethod
    async def get_candidate(self, candidate_id: str) -> CandidateProfile | None:
        """Fetch one profile by id."""

    @abstractmethod
    async def list_candidates(
        self, limit: int | None = None, ids: list[str] | None = None
    ) -> list[CandidateProfile]:
        """Profiles in insertion order.

        With ``ids`` set, only profiles whose id is listed are returned;
        unknown ids are ignored.
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of stored profiles."""

    @abstractmethod
    async def vector_search(
        self,
        query_vector: list[float],
        num_candidates: int,
        limit: int,
    ) -> list[ScoredCandidate]:
        """Nearest neighbours by cosine similarity, best first.

        ``num_candidates`` is the pool considered before truncating to
        ``limit``; exact backends treat it as an upper bound.
        """

    @abstractmethod
    async def keyword_search(
        self, pattern: str | None, limit: int
    ) -> list[CandidateProfile]:
        """Case-insensitive regex match over skill names, title and bio.

        A None pattern matches every profile (still bounded by ``limit``).
        """

    @abstractmethod
    async def increment_match_count(self, candidate_ids: list[str]) -> None:
        """Bump the match counter of each listed profile."""

    def close(self) -> None:
        """Release backend resources."""


def keyword_regex(pattern: str) -> re.Pattern[str]:
    """Compile a keyword pattern the way every backend must apply it."""
    return re.compile(pattern, re.IGNORECASE)


def matches_keywords(candidate: CandidateProfile, regex: re.Pattern[str]) -> bool:
    """True if any skill name, the title, or the bio matches ``regex``."""
    if any(regex.search(name) for name in candidate.skill_names):
        return True
    return bool(regex.search(candidate.title) or regex.search(candidate.bio))
