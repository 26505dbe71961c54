# tests/unit/core/test_unit_similarity.py — v3
"""Tests for core/similarity.py."""

from __future__ import annotations

import numpy as np
import pytest

from expertmesh.core.similarity import cosine_scores, top_k


class TestCosineScores:
    def test_identical_and_orthogonal(self):
        m = np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
        scores = cosine_scores([1.0, 0.0], m)
        assert scores.tolist() == pytest.approx([1.0, 0.0, -1.0])

    def test_zero_vector_scores_zero(self):
        scores = cosine_scores([1.0, 0.0], np.array([[0.0, 0.0]]))
        assert scores[0] == pytest.approx(0.0)

    def test_empty_matrix(self):
        assert cosine_scores([1.0], np.empty((0, 1))).size == 0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="Dimension mismatch"):
            cosine_scores([1.0, 0.0, 0.0], np.array([[1.0, 0.0]]))

    def test_not_2d(self):
        with pytest.raises(ValueError):
            cosine_scores([1.0], np.array([1.0]))


class TestTopK:
    def test_order(self):
        assert top_k(np.array([0.1, 0.9, 0.5]), 2) == [1, 2]

    def test_ties_keep_index_order(self):
        assert top_k(np.array([0.5, 0.5, 0.5]), 3) == [0, 1, 2]

    def test_k_zero(self):
        assert top_k(np.array([0.5]), 0) == []
