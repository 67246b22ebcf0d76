"""
Synthetic datasets for exercising and benchmarking an index.

All helpers take an explicit :class:`numpy.random.Generator` so that a fixed
seed always yields the same dataset.
"""

from __future__ import annotations

from typing import List

import numpy as np

from lshann.vector import Vector


def generate(
    rng: np.random.Generator,
    dimension: int,
    size: int,
    max_value: int,
) -> List[Vector]:
    """
    Generate ``size`` dense vectors keyed ``"0"`` .. ``str(size - 1)``.

    Each coordinate is an integer drawn uniformly from ``[0, max_value)``.
    """
    if dimension <= 0 or size < 0 or max_value <= 0:
        raise ValueError("dimension and max_value must be positive, size non-negative")
    points = rng.integers(0, max_value, size=(size, dimension)).astype(np.float64)
    return [Vector.dense(str(i), row) for i, row in enumerate(points)]


def add_neighbours(
    rng: np.random.Generator,
    dataset: List[Vector],
    count: int,
    radius: float,
) -> List[Vector]:
    """
    Append ``count`` perturbed copies of every vector to ``dataset``.

    A copy of ``v`` is keyed ``f"{v.key}_{i}"`` and each of its coordinates is
    moved by a value drawn uniformly from ``[-radius, radius]``. A dataset of
    10 vectors with 2 neighbours each ends up with 30 vectors.

    Returns the newly added vectors.
    """
    added = []
    for original in list(dataset):
        base = original.to_dense()
        for i in range(count):
            shift = rng.uniform(-radius, radius, size=original.dimension)
            added.append(Vector.dense(f"{original.key}_{i}", base + shift))
    dataset.extend(added)
    return added


def displace(
    rng: np.random.Generator,
    vector: Vector,
    distance: float,
    key: str,
) -> Vector:
    """Copy of ``vector`` moved exactly ``distance`` along a random direction."""
    direction = rng.standard_normal(vector.dimension)
    direction /= np.linalg.norm(direction)
    return Vector.dense(key, vector.to_dense() + distance * direction)
