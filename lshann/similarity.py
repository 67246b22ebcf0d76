"""
Correlation metrics: distances and similarities between two vectors.

Every metric is a member of the closed :class:`Correlation` enum and is
selected by value (``Correlation.EUCLIDEAN`` or ``get_correlation("dice")``).
Metrics are stateless and symmetric.

Distances (Euclidean, Manhattan, MSE, Chebyshev) accumulate over the indices
present in at least one of the two vectors, a missing coordinate counting as
zero. Similarities (cosine, Dice, Jaccard) lie in ``[0, 1]`` for non-negative
input, ``1`` meaning identical.

When the two vectors share no stored index the pair is *incomparable* and the
metric returns ``NaN`` instead of raising. Callers rank with :func:`top_k`,
which drops such scores. Two zero vectors are the exception: they are the same
point whatever their layout, so every metric scores them with its identity
(``0`` for distances, ``1`` for similarities).
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, List, Tuple, TypeVar, Union

import numpy as np
from numpy.typing import NDArray

from lshann.exceptions import ValidationError
from lshann.vector import Vector

INCOMPARABLE = math.nan

K = TypeVar("K", bound=Hashable)
Aligned = Tuple[NDArray[np.float64], NDArray[np.float64], int]


def is_incomparable(score: float) -> bool:
    """True for the ``NaN`` sentinel returned by incomparable pairs."""
    return math.isnan(score)


def _align(left: Vector, right: Vector) -> Aligned:
    """
    Line up the coordinates of two vectors over the union of their support.

    Returns both value arrays and the overlap count (indices stored by both).
    """
    if left.dimension != right.dimension:
        raise ValidationError(
            f"Cannot correlate vectors of dimension {left.dimension} and {right.dimension}"
        )
    if not left.is_sparse and not right.is_sparse:
        indices = left.support_indices()
        return left.values_at(indices), right.values_at(indices), left.dimension

    left_idx = left.support_indices()
    right_idx = right.support_indices()
    union = np.union1d(left_idx, right_idx)
    overlap = int(np.intersect1d(left_idx, right_idx, assume_unique=True).shape[0])
    return left.values_at(union), right.values_at(union), overlap


def _both_zero(lv: NDArray[np.float64], rv: NDArray[np.float64]) -> bool:
    # a sparse zero vector stores nothing, so it never overlaps anything
    return not np.any(lv) and not np.any(rv)


def _root(total: float) -> float:
    # exact zero skips the root so identical vectors score a clean 0.0
    if total == 0.0:
        return 0.0
    return math.sqrt(total)


def _distance_fallback(lv: NDArray[np.float64], rv: NDArray[np.float64]) -> float:
    return 0.0 if _both_zero(lv, rv) else INCOMPARABLE


def euclidean_distance(left: Vector, right: Vector) -> float:
    lv, rv, overlap = _align(left, right)
    if overlap == 0:
        return _distance_fallback(lv, rv)
    diff = lv - rv
    return _root(float(np.dot(diff, diff)))


def manhattan_distance(left: Vector, right: Vector) -> float:
    """Square root of the summed absolute differences."""
    lv, rv, overlap = _align(left, right)
    if overlap == 0:
        return _distance_fallback(lv, rv)
    return _root(float(np.sum(np.abs(lv - rv))))


def mse_distance(left: Vector, right: Vector) -> float:
    """Squared differences summed and divided by the overlap count."""
    lv, rv, overlap = _align(left, right)
    if overlap == 0:
        return _distance_fallback(lv, rv)
    diff = lv - rv
    total = float(np.dot(diff, diff))
    if total == 0.0:
        return 0.0
    return total / overlap


def chebyshev_distance(left: Vector, right: Vector) -> float:
    lv, rv, overlap = _align(left, right)
    if overlap == 0:
        return _distance_fallback(lv, rv)
    return float(np.max(np.abs(lv - rv)))


def cosine_similarity(left: Vector, right: Vector) -> float:
    """Cosine of the angle between the vectors. Zero against non-zero is ``NaN``."""
    lv, rv, overlap = _align(left, right)
    norm = float(np.linalg.norm(lv)) * float(np.linalg.norm(rv))
    if overlap == 0 or norm == 0.0:
        return 1.0 if _both_zero(lv, rv) else INCOMPARABLE
    return max(-1.0, min(1.0, float(np.dot(lv, rv)) / norm))


def _support_cardinalities(left: Vector, right: Vector) -> Tuple[int, int, int, int]:
    # overlap of the stored indices decides comparability, the non-zero
    # index sets feed the coefficient itself
    _, _, overlap = _align(left, right)
    a = left.nonzero()
    b = right.nonzero()
    return overlap, len(a & b), len(a), len(b)


def dice_coefficient(left: Vector, right: Vector) -> float:
    """``2|A∩B| / (|A| + |B|)`` over the non-zero index sets."""
    overlap, shared, size_a, size_b = _support_cardinalities(left, right)
    if size_a + size_b == 0:
        # both empty: two zero vectors
        return 1.0
    if overlap == 0:
        return INCOMPARABLE
    return 2.0 * shared / (size_a + size_b)


def jaccard_coefficient(left: Vector, right: Vector) -> float:
    """``|A∩B| / |A∪B|`` over the non-zero index sets."""
    overlap, shared, size_a, size_b = _support_cardinalities(left, right)
    union = size_a + size_b - shared
    if union == 0:
        return 1.0
    if overlap == 0:
        return INCOMPARABLE
    return shared / union


class Correlation(str, Enum):
    """Closed set of correlation metrics available for ranking."""

    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    MSE = "mse"
    CHEBYSHEV = "chebyshev"
    COSINE = "cosine"
    DICE = "dice"
    JACCARD = "jaccard"

    @property
    def is_distance(self) -> bool:
        """Distances rank ascending, similarities descending."""
        return self in _DISTANCES

    @property
    def identity(self) -> float:
        """Score of a vector against itself."""
        return 0.0 if self.is_distance else 1.0

    def score(self, left: Vector, right: Vector) -> float:
        return _FUNCTIONS[self](left, right)

    def __call__(self, left: Vector, right: Vector) -> float:
        return self.score(left, right)


_DISTANCES = frozenset(
    {
        Correlation.EUCLIDEAN,
        Correlation.MANHATTAN,
        Correlation.MSE,
        Correlation.CHEBYSHEV,
    }
)

_FUNCTIONS: Dict[Correlation, Callable[[Vector, Vector], float]] = {
    Correlation.EUCLIDEAN: euclidean_distance,
    Correlation.MANHATTAN: manhattan_distance,
    Correlation.MSE: mse_distance,
    Correlation.CHEBYSHEV: chebyshev_distance,
    Correlation.COSINE: cosine_similarity,
    Correlation.DICE: dice_coefficient,
    Correlation.JACCARD: jaccard_coefficient,
}

_ALIASES = {
    "l2": Correlation.EUCLIDEAN,
    "l1": Correlation.MANHATTAN,
    "cityblock": Correlation.MANHATTAN,
    "msd": Correlation.MSE,
    "linf": Correlation.CHEBYSHEV,
}


def get_correlation(metric: Union[str, Correlation]) -> Correlation:
    """
    Resolve a metric by enum member, name or common alias.

    Raises:
        ValueError: If the name is unknown.
    """
    if isinstance(metric, Correlation):
        return metric
    name = str(metric).strip().lower()
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return Correlation(name)
    except ValueError:
        choices = ", ".join(member.value for member in Correlation)
        raise ValueError(
            f"Unsupported correlation {metric!r}; expected one of: {choices}"
        ) from None


def top_k(
    scores: Iterable[Tuple[K, float]],
    *,
    k: int,
    metric: Correlation,
) -> List[Tuple[K, float]]:
    """
    Rank ``(key, score)`` pairs and keep the best ``k``.

    Incomparable (``NaN``) scores are dropped. Distances sort ascending and
    similarities descending; equal scores are ordered by key.
    """
    if k <= 0:
        raise ValueError("k must be greater than zero")
    comparable = [(key, score) for key, score in scores if not is_incomparable(score)]
    if metric.is_distance:
        comparable.sort(key=lambda item: (item[1], item[0]))
    else:
        comparable.sort(key=lambda item: (-item[1], item[0]))
    return comparable[:k]
