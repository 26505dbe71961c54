# src/embeddings/embedder_factory.py — v2
"""Factory: instantiate the embedding provider from configuration."""

from __future__ import annotations

import importlib
import logging

from expertmesh.config.settings import Settings
from expertmesh.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

_PROVIDER_REGISTRY: dict[str, str] = {
    "voyage": "expertmesh.embeddings.voyage_embedder.VoyageEmbedder",
    "openai": "expertmesh.embeddings.openai_embedder.OpenAIEmbedder",
}


class UnsupportedEmbeddingProviderError(ValueError):
    """Raised when an embedding provider is not registered."""


def create_embedder(settings: Settings) -> BaseEmbedder | None:
    """Instantiate the configured embedding provider.

    Returns None when embeddings are disabled or the provider has no
    credential; the gateway then serves degraded random vectors.
    """
    provider = settings.embedding_provider
    if provider == "none":
        return None
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedEmbeddingProviderError(
            f"Unsupported embedding provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    api_key = (
        settings.voyage_api_key if provider == "voyage" else settings.openai_api_key
    )
    if not api_key:
        logger.warning(
            "No API key for embedding provider %s; using random vectors", provider
        )
        return None

    module_path, class_name = _PROVIDER_REGISTRY[provider].rsplit(".", 1)
    cls = getattr(importlib.import_module(module_path), class_name)

    logger.debug("Creating embedder: provider=%s", provider)
    return cls(
        model=settings.embedding_model,
        api_key=api_key,
        dimensions=settings.embedding_dimensions,
    )
