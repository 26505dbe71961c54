# src/embeddings/voyage_embedder.py — v2
"""Voyage AI embedding adapter.

Uses the voyageai SDK async client. Models: voyage-2, voyage-3, voyage-3-lite.
"""

from __future__ import annotations

import logging

from expertmesh.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class VoyageEmbedder(BaseEmbedder):
    """Embeddings via the Voyage API."""

    def __init__(
        self,
        model: str = "voyage-2",
        api_key: str | None = None,
        dimensions: int = 1024,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            import voyageai

            self.__client = voyageai.AsyncClient(api_key=self._api_key or "")
        return self.__client

    async def embed_query(self, text: str) -> list[float]:
        result = await self._client.embed([text], model=self._model)
        return list(result.embeddings[0])

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "voyage"

    @property
    def model_name(self) -> str:
        return self._model
