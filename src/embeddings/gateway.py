# src/embeddings/gateway.py — v1
"""Lookaside embedding cache in front of the embedding provider.

Identical text always maps to the same vector, so cached embeddings never
expire. Provider failures degrade to a random vector instead of failing
the caller; such vectors still order candidates, just not meaningfully.
"""

from __future__ import annotations

import logging

import numpy as np

from expertmesh.cache.base_cache_store import BaseCacheStore
from expertmesh.cache.fingerprint import text_hash
from expertmesh.cache.models import TEXT_PREVIEW_CHARS, EmbeddingCacheEntry
from expertmesh.core.models import utc_now
from expertmesh.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class EmbeddingUnavailableError(RuntimeError):
    """Raised by ``embed(..., fallback=False)`` when no real vector can be produced."""


class EmbeddingGateway:
    """Cached ``embed(text) -> vector`` with a degraded-mode fallback.

    Args:
        cache_store: Store holding embedding cache entries.
        embedder: Provider adapter; None means no credential is configured.
        dimensions: Vector size used for degraded vectors.
        rng: Random generator for degraded vectors (seedable in tests).
    """

    def __init__(
        self,
        cache_store: BaseCacheStore,
        embedder: BaseEmbedder | None,
        dimensions: int = 1024,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._cache = cache_store
        self._embedder = embedder
        self._dimensions = embedder.dimensions if embedder else dimensions
        self._rng = rng or np.random.default_rng()

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str, fallback: bool = True) -> list[float]:
        """Cached embedding of ``text``.

        With ``fallback`` unset, a missing or failing provider raises
        EmbeddingUnavailableError instead of yielding a random vector.
        """
        if self._embedder is None:
            if not fallback:
                raise EmbeddingUnavailableError("Embedding provider not configured")
            logger.warning("Embedding provider not configured, using random vector")
            return self.random_vector()

        key = text_hash(text)
        cached = await self._cache.get_embedding(key)
        if cached is not None:
            logger.debug("Embedding cache hit: %s", key[:12])
            return cached.embedding

        logger.debug("Embedding cache miss: %s", key[:12])
        try:
            vector = await self._embedder.embed_query(text)
        except Exception as exc:
            if not fallback:
                raise EmbeddingUnavailableError(str(exc)) from exc
            logger.warning(
                "Embedding provider %s failed, using random vector: %s",
                self._embedder.provider_name, exc,
            )
            return self.random_vector()

        # Concurrent misses write the same value; last write wins.
        await self._cache.put_embedding(
            EmbeddingCacheEntry(
                text_hash=key,
                text=text[:TEXT_PREVIEW_CHARS],
                embedding=vector,
                created_at=utc_now(),
            )
        )
        return vector

    def random_vector(self) -> list[float]:
        """Uniform vector in [-1, 1] of the expected dimensionality."""
        return self._rng.uniform(-1.0, 1.0, self._dimensions).tolist()
