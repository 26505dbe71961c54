# src/embeddings/openai_embedder.py — v2
"""OpenAI embedding adapter.

Models: text-embedding-3-small, text-embedding-3-large. The requested
dimensionality is passed through so vectors match the profile index.
"""

from __future__ import annotations

import logging

from expertmesh.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class OpenAIEmbedder(BaseEmbedder):
    """Embeddings via OpenAI API."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
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
            import openai

            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self.__client

    async def embed_query(self, text: str) -> list[float]:
        response = await self._client.embeddings.create(
            input=[text], model=self._model, dimensions=self._dimensions
        )
        return response.data[0].embedding

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
