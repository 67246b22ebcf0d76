"""
Recall calculator for LSH indexes.

For a pair of vectors at distance ``r`` a single hash function collides with
probability ``p(r)``. With ``k`` functions AND-composed per table and ``L``
tables OR-composed, the pair ends up in the candidate set with probability

    P = 1 - (1 - p^k)^L

which is the S-curve that governs the recall/latency trade-off of
``{w, k, L}``. Only closed forms from the standard p-stable and random
hyperplane constructions are used, no scipy.
"""

from __future__ import annotations

import math
from typing import Union

from lshann._config.config import HashFamily, IndexConfig


def _normal_cdf(x: float) -> float:
    return 0.5 * (1.0 + math.erf(x / math.sqrt(2.0)))


def collision_probability(
    distance: float,
    bucket_width: float,
    family: Union[HashFamily, str] = HashFamily.EUCLIDEAN,
) -> float:
    """
    Probability that one hash function maps two points to the same slot.

    Args:
        distance: Euclidean distance (``EUCLIDEAN``), L1 distance
            (``MANHATTAN``) or angle in radians (``COSINE``) between the points.
        bucket_width: Slot width ``w``; ignored by ``COSINE``.
        family: Hash family the functions were drawn from.

    Returns:
        Probability in ``[0, 1]``.

    Examples:
        >>> round(collision_probability(2.0, 4.0), 4)
        0.6095
        >>> collision_probability(0.0, 4.0)
        1.0
    """
    family = HashFamily.resolve(family)
    if distance < 0:
        raise ValueError("distance must be non-negative")
    if bucket_width <= 0:
        raise ValueError("bucket_width must be greater than zero")
    if distance == 0:
        return 1.0

    if family is HashFamily.COSINE:
        angle = min(distance, math.pi)
        return 1.0 - angle / math.pi

    ratio = bucket_width / distance
    if family is HashFamily.MANHATTAN:
        # Cauchy (1-stable) projections
        p = 2.0 * math.atan(ratio) / math.pi - math.log1p(ratio * ratio) / (math.pi * ratio)
    else:
        # Gaussian (2-stable) projections
        p = (
            1.0
            - 2.0 * _normal_cdf(-ratio)
            - 2.0 / (math.sqrt(2.0 * math.pi) * ratio) * (1.0 - math.exp(-(ratio * ratio) / 2.0))
        )
    return min(1.0, max(0.0, p))


def candidate_probability(p: float, functions_per_table: int, table_count: int) -> float:
    """``1 - (1 - p^k)^L``: chance a pair shares a bucket in at least one table."""
    if not 0.0 <= p <= 1.0:
        raise ValueError("p must be within [0, 1]")
    if functions_per_table <= 0 or table_count <= 0:
        raise ValueError("functions_per_table and table_count must be greater than zero")
    return 1.0 - (1.0 - p ** functions_per_table) ** table_count


def expected_recall(distance: float, config: IndexConfig) -> float:
    """Candidate probability of a neighbour at ``distance`` under ``config``."""
    p = collision_probability(distance, config.bucket_width, config.family)
    return candidate_probability(p, config.functions_per_table, config.table_count)


def tables_for_recall(p: float, functions_per_table: int, target_recall: float) -> int:
    """
    Smallest ``L`` whose candidate probability reaches ``target_recall``.

    Examples:
        >>> tables_for_recall(0.8, 4, 0.9)
        5
    """
    if not 0.0 < target_recall < 1.0:
        raise ValueError("target_recall must be within (0, 1)")
    if functions_per_table <= 0:
        raise ValueError("functions_per_table must be greater than zero")
    per_table = p ** functions_per_table
    if per_table <= 0.0:
        raise ValueError("Target recall is unreachable with a zero collision probability")
    if per_table >= 1.0:
        return 1
    return max(1, math.ceil(math.log(1.0 - target_recall) / math.log(1.0 - per_table)))
