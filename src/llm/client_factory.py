# src/llm/client_factory.py — v3
"""Factory: instantiate the completion client from settings."""

from __future__ import annotations

import importlib
import logging

from expertmesh.config.settings import Settings
from expertmesh.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "fireworks": "expertmesh.llm.adapters.openai_adapter.OpenAIAdapter",
    "openai": "expertmesh.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(settings: Settings, **kwargs: object) -> BaseLLMClient:
    """Instantiate the adapter for ``settings.llm_provider``.

    A missing API key is not an error here: the adapter raises on first
    use, which the pipeline stages absorb through their fallbacks.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    provider = settings.llm_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs.setdefault("model", settings.llm_model)
    init_kwargs.setdefault("api_key", settings.llm_api_key)
    init_kwargs.setdefault("provider", provider)
    if provider == "fireworks":
        init_kwargs.setdefault("base_url", settings.fireworks_base_url)

    if not init_kwargs["api_key"]:
        logger.warning(
            "No API key for LLM provider %s; analyst and ranker will use fallbacks",
            provider,
        )

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, init_kwargs["model"])
    return adapter_cls(**init_kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
