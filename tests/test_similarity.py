"""Tests for the correlation metric family."""

from __future__ import annotations

import math

import numpy as np
import pytest

from lshann import Correlation, ValidationError, Vector, get_correlation, is_incomparable
from lshann.similarity import top_k

DISTANCES = [m for m in Correlation if m.is_distance]
SIMILARITIES = [m for m in Correlation if not m.is_distance]


def dense(values, key=None):
    return Vector.dense(key, values)


def sparse(values, dimension=8, key=None):
    return Vector.sparse(key, values, dimension)


# ---------------------------------------------------------------------------
# Identity and symmetry
# ---------------------------------------------------------------------------


class TestIdentity:
    @pytest.mark.parametrize("metric", DISTANCES)
    def test_distance_to_self_is_zero(self, metric, rng):
        v = dense(rng.standard_normal(16))
        assert metric(v, v) == 0.0

    @pytest.mark.parametrize("metric", SIMILARITIES)
    def test_similarity_to_self_is_one(self, metric, rng):
        v = dense(rng.uniform(0.5, 2.0, 16))
        assert metric(v, v) == pytest.approx(1.0)

    @pytest.mark.parametrize("metric", list(Correlation))
    def test_identity_property(self, metric):
        assert metric.identity == (0.0 if metric.is_distance else 1.0)

    @pytest.mark.parametrize("metric", DISTANCES)
    def test_sparse_self_distance_is_zero(self, metric):
        v = sparse({1: 2.0, 4: -3.0})
        assert metric(v, v) == 0.0

    @pytest.mark.parametrize("metric", list(Correlation))
    def test_zero_vector_scores_identity_against_itself(self, metric):
        empty = sparse({})
        explicit_zeros = sparse({0: 0.0, 3: 0.0})
        origin = dense([0.0] * 8)
        assert metric(empty, empty) == metric.identity
        assert metric(empty, explicit_zeros) == metric.identity
        assert metric(origin, origin) == metric.identity
        assert metric(origin, empty) == metric.identity
        assert metric(empty, origin) == metric.identity


class TestSymmetry:
    @pytest.mark.parametrize("metric", list(Correlation))
    def test_dense_pairs(self, metric, rng):
        for _ in range(20):
            a = dense(rng.standard_normal(12))
            b = dense(rng.standard_normal(12))
            assert metric(a, b) == metric(b, a)

    @pytest.mark.parametrize("metric", list(Correlation))
    def test_sparse_and_mixed_pairs(self, metric):
        a = sparse({0: 1.0, 2: 3.0, 5: -1.0})
        b = sparse({2: 1.0, 5: 4.0, 7: 2.0})
        c = dense([1.0, 0.0, 2.0, 0.0, 0.0, 1.0, 0.0, 1.0])
        assert metric(a, b) == metric(b, a)
        assert metric(a, c) == metric(c, a)


# ---------------------------------------------------------------------------
# Concrete values
# ---------------------------------------------------------------------------


class TestDistanceValues:
    def test_euclidean(self):
        assert Correlation.EUCLIDEAN(dense([0, 0]), dense([0.1, 0.1])) == pytest.approx(
            math.sqrt(0.02)
        )
        assert Correlation.EUCLIDEAN(dense([0, 0]), dense([3, 4])) == pytest.approx(5.0)

    def test_manhattan_takes_root_of_absolute_sum(self):
        # |1| + |2| + |6| = 9 -> sqrt(9)
        assert Correlation.MANHATTAN(dense([1, 2, 3]), dense([0, 0, -3])) == pytest.approx(3.0)

    def test_mse_divides_by_overlap(self):
        assert Correlation.MSE(dense([1, 2, 3, 4]), dense([1, 2, 3, 6])) == pytest.approx(1.0)

    def test_chebyshev(self):
        assert Correlation.CHEBYSHEV(dense([1, 5, 2]), dense([2, 1, 2])) == pytest.approx(4.0)

    def test_sparse_missing_indices_count_as_zero(self):
        a = sparse({0: 1.0, 1: 2.0})
        b = sparse({1: 2.0, 3: 2.0})
        # shared index 1 makes the pair comparable; 0 and 3 differ by 1 and 2
        assert Correlation.EUCLIDEAN(a, b) == pytest.approx(math.sqrt(5.0))
        assert Correlation.MANHATTAN(a, b) == pytest.approx(math.sqrt(3.0))
        assert Correlation.MSE(a, b) == pytest.approx(5.0)

    def test_sparse_matches_dense_equivalent_when_fully_stored(self):
        values = [1.0, -2.0, 0.5, 3.0]
        a = sparse(dict(enumerate(values)), dimension=4)
        b = dense([0.0, 1.0, 2.0, 3.0])
        assert Correlation.EUCLIDEAN(a, b) == pytest.approx(
            Correlation.EUCLIDEAN(dense(values), b)
        )


class TestSimilarityValues:
    def test_cosine_orthogonal_and_parallel(self):
        assert Correlation.COSINE(dense([1, 0]), dense([0, 1])) == pytest.approx(0.0)
        assert Correlation.COSINE(dense([1, 1]), dense([2, 2])) == pytest.approx(1.0)

    def test_dice(self):
        a = dense([1, 1, 0, 0])
        b = dense([1, 0, 1, 0])
        # 2 * 1 / (2 + 2)
        assert Correlation.DICE(a, b) == pytest.approx(0.5)

    def test_jaccard(self):
        a = dense([1, 1, 0, 0])
        b = dense([1, 0, 1, 0])
        # 1 / 3
        assert Correlation.JACCARD(a, b) == pytest.approx(1.0 / 3.0)

    def test_dice_identical_support_is_one_regardless_of_values(self):
        assert Correlation.DICE(dense([1, 0, 3]), dense([5, 0, 0.1])) == pytest.approx(1.0)

    @pytest.mark.parametrize("metric", SIMILARITIES)
    def test_range_for_non_negative_input(self, metric, rng):
        for _ in range(20):
            a = dense(rng.uniform(0, 1, 10) * (rng.uniform(0, 1, 10) > 0.4))
            b = dense(rng.uniform(0, 1, 10) * (rng.uniform(0, 1, 10) > 0.4))
            score = metric(a, b)
            if not is_incomparable(score):
                assert 0.0 <= score <= 1.0


# ---------------------------------------------------------------------------
# Incomparable pairs
# ---------------------------------------------------------------------------


class TestIncomparable:
    @pytest.mark.parametrize("metric", list(Correlation))
    def test_sparse_without_shared_index_is_nan(self, metric):
        x = sparse({0: 1.0})
        y = sparse({5: 1.0})
        assert is_incomparable(metric(x, y))

    def test_zero_norm_cosine_is_nan(self):
        assert is_incomparable(Correlation.COSINE(dense([0, 0]), dense([1, 1])))

    @pytest.mark.parametrize("metric", [Correlation.DICE, Correlation.JACCARD])
    def test_zero_against_non_zero_is_nan(self, metric):
        assert is_incomparable(metric(sparse({}), sparse({2: 1.0})))
        assert is_incomparable(metric(dense([0, 1]), sparse({}, dimension=2)))

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValidationError, match="dimension"):
            Correlation.EUCLIDEAN(dense([1, 2]), dense([1, 2, 3]))


# ---------------------------------------------------------------------------
# Registry and ranking
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_resolve_by_member_name_and_alias(self):
        assert get_correlation(Correlation.DICE) is Correlation.DICE
        assert get_correlation("Euclidean") is Correlation.EUCLIDEAN
        assert get_correlation("l1") is Correlation.MANHATTAN

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unsupported correlation"):
            get_correlation("hamming")


class TestTopK:
    def test_distance_ascending_with_key_tie_break(self):
        scores = [("c", 1.0), ("b", 0.5), ("a", 0.5), ("d", math.nan)]
        assert top_k(scores, k=3, metric=Correlation.EUCLIDEAN) == [
            ("a", 0.5),
            ("b", 0.5),
            ("c", 1.0),
        ]

    def test_similarity_descending(self):
        scores = [("a", 0.2), ("b", 0.9), ("c", 0.9)]
        assert top_k(scores, k=2, metric=Correlation.COSINE) == [("b", 0.9), ("c", 0.9)]

    def test_non_positive_k_raises(self):
        with pytest.raises(ValueError, match="k must be greater than zero"):
            top_k([], k=0, metric=Correlation.EUCLIDEAN)

    def test_nan_only_input_yields_empty(self):
        assert top_k([("a", math.nan)], k=5, metric=Correlation.DICE) == []


def test_scores_are_python_floats():
    score = Correlation.EUCLIDEAN(dense(np.ones(3)), dense(np.zeros(3)))
    assert type(score) is float
