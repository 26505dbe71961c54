# src/api/models.py — v2
"""Public API models: search and answer requests, ingestion/setup reports."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class SearchRequest(BaseModel):
    """Validated search request."""

    query: str = Field(min_length=1)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must contain non-whitespace text")
        return v


class AnswerRequest(SearchRequest):
    """Validated answer-mode request."""

    top_k: int = Field(default=5, ge=1)
    include_context: bool = False


class IngestReport(BaseModel):
    """Outcome of a bulk profile import."""

    inserted: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: int = 0


class SetupReport(BaseModel):
    """Outcome of index provisioning."""

    store_backend: str
    cache_backend: str
    candidate_count: int
