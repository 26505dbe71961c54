# src/cache/models.py — v2
"""Cache domain models: EmbeddingCacheEntry, ResultCacheEntry."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

TEXT_PREVIEW_CHARS = 500


class EmbeddingCacheEntry(BaseModel):
    """Provider embedding keyed by the hash of its exact input text. No TTL."""

    text_hash: str
    text: str = Field(default="", max_length=TEXT_PREVIEW_CHARS)
    embedding: list[float]
    created_at: datetime


class ResultCacheEntry(BaseModel):
    """Full pipeline response keyed by the normalized query hash."""

    query_hash: str
    original_query: str
    result: dict[str, Any]
    created_at: datetime
    expires_at: datetime

    def is_live(self, now: datetime) -> bool:
        """True while the expiry timestamp is still in the future."""
        return self.expires_at > now
