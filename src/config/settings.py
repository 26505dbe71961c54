# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: provider
credentials, store backends, retrieval limits, and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDER ===
    llm_provider: Literal["fireworks", "openai"] = "fireworks"
    llm_model: str = "accounts/fireworks/models/llama-v3p3-70b-instruct"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2048

    fireworks_api_key: str = ""
    fireworks_base_url: str = "https://api.fireworks.ai/inference/v1"
    openai_api_key: str = ""

    # === EMBEDDINGS ===
    embedding_provider: Literal["voyage", "openai", "none"] = "voyage"
    embedding_model: str = "voyage-2"
    embedding_dimensions: int = 1024
    voyage_api_key: str = ""

    # === Candidate + record store ===
    store_backend: Literal["memory", "sqlite"] = "sqlite"
    store_path: Path = Path("~/.expertmesh/expertmesh.db")

    # === Cache ===
    cache_backend: Literal["sqlite", "redis"] = "sqlite"
    cache_path: Path = Path("~/.expertmesh/cache.db")
    cache_redis_url: str = ""
    result_cache_ttl_seconds: int = 3600

    # === Retrieval ===
    retriever_num_candidates: int = 100
    retriever_search_limit: int = 20
    retriever_result_limit: int = 10

    # === Ranking ===
    ranker_top_n: int = 5
    availability_bonus: float = 0.1

    # === Answer mode ===
    answer_top_k: int = 5
    answer_max_tokens: int = 500

    # === LLM call tracking ===
    call_log_max_records: int = 1000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("result_cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: int) -> int:  # noqa: N805
        """Result cache horizon must be positive."""
        if v <= 0:
            raise ValueError("result_cache_ttl_seconds must be > 0")
        return v

    @field_validator("call_log_max_records")
    @classmethod
    def validate_call_log_size(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("call_log_max_records must be > 0")
        return v

    @field_validator("availability_bonus")
    @classmethod
    def validate_bonus(cls, v: float) -> float:  # noqa: N805
        if not 0.0 <= v <= 1.0:
            raise ValueError("availability_bonus must be within [0, 1]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.retriever_result_limit > self.retriever_search_limit:
            errors.append(
                "RETRIEVER_RESULT_LIMIT must be <= RETRIEVER_SEARCH_LIMIT"
            )
        if self.retriever_search_limit > self.retriever_num_candidates:
            errors.append(
                "RETRIEVER_SEARCH_LIMIT must be <= RETRIEVER_NUM_CANDIDATES"
            )
        if self.ranker_top_n <= 0:
            errors.append("RANKER_TOP_N must be > 0")
        if self.answer_top_k <= 0:
            errors.append("ANSWER_TOP_K must be > 0")
        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def llm_api_key(self) -> str:
        """API key for the configured completion provider."""
        if self.llm_provider == "fireworks":
            return self.fireworks_api_key
        return self.openai_api_key


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
