# src/llm/base_client.py — v2
"""Abstract completion client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from expertmesh.llm.models import LLMResponse, Message


class LLMConfigurationError(RuntimeError):
    """Raised at call time when the provider has no usable credential."""


class BaseLLMClient(ABC):
    """Unified interface for chat-completion providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Chat completion.

        When ``json_mode`` is set the provider is asked for a JSON object;
        callers must still tolerate malformed content.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (fireworks, openai)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
