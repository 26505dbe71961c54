# src/core/similarity.py — v3
"""Cosine similarity between a query vector and a matrix of candidate vectors."""

from __future__ import annotations

import numpy as np


def cosine_scores(query: list[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against each row of ``matrix``.

    Args:
        query: Query vector of length d.
        matrix: 2D array of shape (n, d).

    Returns:
        1D array of n similarities in [-1, 1]. Zero vectors score 0.

    Raises:
        ValueError: If dimensions disagree or matrix is not 2D.
    """
    if matrix.ndim != 2:
        raise ValueError(f"Expected 2D array, got {matrix.ndim}D")
    if matrix.shape[0] == 0:
        return np.empty(0, dtype=np.float64)

    q = np.asarray(query, dtype=np.float64)
    if q.shape[0] != matrix.shape[1]:
        raise ValueError(
            f"Dimension mismatch: query has {q.shape[0]}, "
            f"candidates have {matrix.shape[1]}"
        )

    row_norms = np.maximum(np.linalg.norm(matrix, axis=1), 1e-10)
    q_norm = max(float(np.linalg.norm(q)), 1e-10)
    return (matrix @ q) / (row_norms * q_norm)


def top_k(scores: np.ndarray, k: int) -> list[int]:
    """Indices of the k highest scores, best first (ties keep index order)."""
    if k <= 0 or scores.size == 0:
        return []
    order = np.argsort(-scores, kind="stable")
    return [int(i) for i in order[:k]]
