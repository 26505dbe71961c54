# src/cache/base_cache_store.py — v2
"""Abstract cache store interface for embedding and result caches."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from expertmesh.cache.models import EmbeddingCacheEntry, ResultCacheEntry


class BaseCacheStore(ABC):
    """Keyed upsert storage for the two lookaside caches.

    Writes are last-write-wins upserts, so concurrent invocations need
    no coordination beyond the backend's own atomicity.
    """

    async def ensure_indexes(self) -> None:
        """Provision keys/indexes. Called once at startup."""

    @abstractmethod
    async def get_embedding(self, text_hash: str) -> EmbeddingCacheEntry | None:
        """Retrieve a cached embedding by text hash."""

    @abstractmethod
    async def put_embedding(self, entry: EmbeddingCacheEntry) -> None:
        """Upsert a cached embedding."""

    @abstractmethod
    async def get_result(
        self, query_hash: str, now: datetime
    ) -> ResultCacheEntry | None:
        """Retrieve a result entry whose ``expires_at`` is after ``now``.

        Expired entries that the backend has not swept yet are skipped.
        """

    @abstractmethod
    async def put_result(self, entry: ResultCacheEntry) -> None:
        """Upsert a result entry (overwrites any entry with the same hash)."""

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Remove result entries expired at ``now``. Returns count removed."""

    def close(self) -> None:
        """Release backend resources."""
