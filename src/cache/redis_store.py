# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Suitable for multi-instance deployments. Result entries are written with
a native key expiry, so Redis itself sweeps stale results.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from expertmesh.cache.base_cache_store import BaseCacheStore
from expertmesh.cache.models import EmbeddingCacheEntry, ResultCacheEntry

logger = logging.getLogger(__name__)

_EMBEDDING_PREFIX = "expertmesh:cache:embedding:"
_RESULT_PREFIX = "expertmesh:cache:result:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed embedding and result cache."""

    def __init__(self, redis_url: str | None = None, client=None) -> None:
        if client is None:
            import redis

            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def get_embedding(self, text_hash: str) -> EmbeddingCacheEntry | None:
        data = self._client.get(f"{_EMBEDDING_PREFIX}{text_hash}")
        if data is None:
            return None
        try:
            return EmbeddingCacheEntry(**json.loads(data))
        except Exception as e:
            logger.warning("Failed to deserialize embedding entry %s: %s", text_hash, e)
            return None

    async def put_embedding(self, entry: EmbeddingCacheEntry) -> None:
        self._client.set(
            f"{_EMBEDDING_PREFIX}{entry.text_hash}", entry.model_dump_json()
        )

    async def get_result(
        self, query_hash: str, now: datetime
    ) -> ResultCacheEntry | None:
        data = self._client.get(f"{_RESULT_PREFIX}{query_hash}")
        if data is None:
            return None
        try:
            entry = ResultCacheEntry(**json.loads(data))
        except Exception as e:
            logger.warning("Failed to deserialize result entry %s: %s", query_hash, e)
            return None
        # Key expiry has one-second granularity; keep the read-time guard.
        return entry if entry.is_live(now) else None

    async def put_result(self, entry: ResultCacheEntry) -> None:
        self._client.set(
            f"{_RESULT_PREFIX}{entry.query_hash}",
            entry.model_dump_json(),
            exat=int(entry.expires_at.timestamp()) + 1,
        )

    async def purge_expired(self, now: datetime) -> int:
        # Expiry is handled by Redis key TTLs.
        return 0

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
