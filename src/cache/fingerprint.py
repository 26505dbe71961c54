# src/cache/fingerprint.py — v3
"""Deterministic cache keys for embeddings and query results."""

from __future__ import annotations

import hashlib


def text_hash(text: str) -> str:
    """SHA-256 of the exact text (embedding cache key)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_query(raw_query: str) -> str:
    """Trim, collapse internal whitespace, and case-fold a query."""
    return " ".join(raw_query.split()).casefold()


def query_hash(raw_query: str) -> str:
    """SHA-256 of the normalized query (result cache key).

    Queries differing only by case or whitespace share a key.
    """
    return text_hash(normalize_query(raw_query))
