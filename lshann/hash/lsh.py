"""
Locality-Sensitive Hashing (LSH) function families

This module generates the random hash functions the index buckets vectors
with. A single hash function maps a vector to one integer:

    h(v) = floor((a · v + b) / w)

where ``a`` is a random direction, ``b`` a random offset drawn from
``[0, w)`` and ``w`` the bucket width. Nearby vectors project to nearby
values on ``a`` and therefore tend to fall into the same slot.

``k`` functions are AND-composed into one table signature and ``L`` tables
are generated, each from its own child of the root seed, so the same
configuration always reproduces the same functions.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
from numpy.typing import NDArray

from lshann._config.config import HashFamily, HashSignature, HashSignatures, IndexConfig
from lshann.vector import Vector

logger = logging.getLogger(__name__)


class HashFunction:
    """
    One random projection hash function.

    Attributes:
        direction: Random projection vector ``a`` of length ``dimension``.
        offset: Random offset ``b`` in ``[0, bucket_width)``.
        bucket_width: Slot width ``w``.
        family: Projection family; ``COSINE`` keeps only the sign of ``a · v``.
    """

    __slots__ = ("direction", "offset", "bucket_width", "family")

    def __init__(
        self,
        direction: NDArray[np.float64],
        offset: float,
        bucket_width: float,
        family: HashFamily,
    ) -> None:
        self.direction = direction
        self.offset = offset
        self.bucket_width = bucket_width
        self.family = family

    def project(self, vector: Vector) -> int:
        """Map ``vector`` to its integer coordinate on this function."""
        projected = float(vector.project(self.direction.reshape(1, -1))[0])
        if self.family is HashFamily.COSINE:
            return int(projected > 0)
        return int(np.floor((projected + self.offset) / self.bucket_width))

    __call__ = project


class SignatureFunction:
    """
    ``k`` hash functions applied together to produce one table's signature.

    The directions are kept as a single ``(k, dimension)`` matrix so a
    signature costs one matrix-vector product.
    """

    def __init__(
        self,
        directions: NDArray[np.float64],
        offsets: NDArray[np.float64],
        bucket_width: float,
        family: HashFamily,
    ) -> None:
        directions.setflags(write=False)
        offsets.setflags(write=False)
        self.directions = directions
        self.offsets = offsets
        self.bucket_width = bucket_width
        self.family = family

    @property
    def size(self) -> int:
        return int(self.directions.shape[0])

    @property
    def functions(self) -> List[HashFunction]:
        return [
            HashFunction(self.directions[i], float(self.offsets[i]), self.bucket_width, self.family)
            for i in range(self.size)
        ]

    def __call__(self, vector: Vector) -> HashSignature:
        projected = vector.project(self.directions)
        if self.family is HashFamily.COSINE:
            slots = (projected > 0).astype(np.int64)
        else:
            slots = np.floor((projected + self.offsets) / self.bucket_width).astype(np.int64)
        return tuple(int(slot) for slot in slots)


class HashFunctionFamily:
    """
    Reproducible generator of per-table signature functions.

    The root ``seed`` is expanded with :class:`numpy.random.SeedSequence`
    into one independent child stream per table; nothing touches numpy's
    global random state.

    Theory:
        - Wider buckets (``w``) → more collisions, higher recall
        - More functions per table (``k``) → purer buckets, higher precision
        - More tables (``L``) → more chances to collide, recall restored

    Example:
        >>> family = HashFunctionFamily(IndexConfig(dimension=64, table_count=4))
        >>> tables = family.generate()
        >>> len(tables), tables[0].size
        (4, 4)
    """

    def __init__(self, config: IndexConfig) -> None:
        self.config = config
        self.dimension = config.dimension
        self.bucket_width = config.bucket_width
        self.functions_per_table = config.functions_per_table
        self.table_count = config.table_count
        self.family = config.family
        self._generated: Optional[List[SignatureFunction]] = None

    def generate(self) -> List[SignatureFunction]:
        """
        Build one :class:`SignatureFunction` per table.

        Pure: every call with the same configuration returns functions with
        identical directions and offsets.
        """
        children = np.random.SeedSequence(self.config.seed).spawn(self.table_count)
        tables = []
        for child in children:
            rng = np.random.default_rng(child)
            shape = (self.functions_per_table, self.dimension)
            if self.family is HashFamily.MANHATTAN:
                directions = rng.standard_cauchy(shape)
            else:
                directions = rng.standard_normal(shape)
            offsets = rng.uniform(0.0, self.bucket_width, self.functions_per_table)
            tables.append(
                SignatureFunction(
                    directions.astype(np.float64),
                    offsets.astype(np.float64),
                    self.bucket_width,
                    self.family,
                )
            )

        logger.debug(
            "Generated %d tables x %d %s hash functions (dim=%d, w=%s, seed=%d)",
            self.table_count,
            self.functions_per_table,
            self.family.value,
            self.dimension,
            self.bucket_width,
            self.config.seed,
        )
        return tables

    @property
    def tables(self) -> List[SignatureFunction]:
        """Lazily generated and cached result of :meth:`generate`."""
        if self._generated is None:
            self._generated = self.generate()
        return self._generated

    def hash_vector(self, vector: Vector) -> HashSignatures:
        """Signatures of ``vector`` in every table, in table order."""
        return HashSignatures(tuple(signature(vector) for signature in self.tables))
