"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from lshann import LSHIndex


@pytest.fixture
def make_index():
    """Factory for creating LSHIndex instances with small, sensible test defaults."""
    created = []

    def _make(
        dimension: int = 8,
        bucket_width: float = 4.0,
        functions_per_table: int = 2,
        table_count: int = 4,
        seed: int = 42,
        **kwargs,
    ) -> LSHIndex:
        index = LSHIndex.create(
            dimension=dimension,
            bucket_width=bucket_width,
            functions_per_table=functions_per_table,
            table_count=table_count,
            seed=seed,
            **kwargs,
        )
        created.append(index)
        return index

    yield _make

    for index in created:
        index.close()


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator for deterministic tests."""
    return np.random.default_rng(12345)
