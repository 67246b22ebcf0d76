"""
The config module holds package-wide configurables and provides
a uniform API for working with them.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Tuple, Union

from lshann.exceptions import ConfigurationError

# One bucket key: the k integer hash values of a single table.
HashSignature = Tuple[int, ...]


class HashFamily(str, Enum):
    """
    Kind of random projection used to build hash functions.

    - ``EUCLIDEAN``: Gaussian (2-stable) directions, ``floor((a·v + b) / w)``.
      Collisions track Euclidean distance.
    - ``MANHATTAN``: Cauchy (1-stable) directions with the same bucketing.
      Collisions track L1 distance.
    - ``COSINE``: random hyperplanes, one sign bit per function. The bucket
      width is ignored. Collisions track the angle between vectors.
    """

    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    COSINE = "cosine"

    @classmethod
    def resolve(cls, value: Union[str, "HashFamily"]) -> "HashFamily":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise ConfigurationError(
                f"Unsupported hash family {value!r}; expected one of: {choices}"
            ) from None


@dataclass(frozen=True)
class HashSignatures:
    """
    Container for the signatures produced by a single vector.

    Holds one :data:`HashSignature` per hash table, in table order. Two
    vectors are candidates for each other when they agree on the signature
    of ANY table.

    Example:
        >>> sigs = HashSignatures(((0, 3), (-1, 2)))
        >>> len(sigs)  # number of tables
        2
        >>> sigs[1]
        (-1, 2)
    """

    tables: Tuple[HashSignature, ...]

    def __iter__(self) -> Iterator[HashSignature]:
        return iter(self.tables)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self.tables)

    def __getitem__(self, table_id: int) -> HashSignature:
        return self.tables[table_id]

    def as_tuple(self) -> Tuple[HashSignature, ...]:
        return self.tables


@dataclass(frozen=True)
class IndexConfig:
    """
    Validated construction parameters of an :class:`~lshann.LSHIndex`.

    Attributes:
        dimension: Number of coordinates every indexed vector must have.
        bucket_width: Discretisation width ``w`` of the projection hash.
            Larger widths merge more points per bucket (higher recall, more
            candidates to rank away).
        functions_per_table: ``k``, hash functions AND-composed into one
            table signature. More functions mean smaller, purer buckets.
        table_count: ``L``, independently seeded tables OR-composed at query
            time to restore recall.
        seed: Root seed. Every table derives its own generator from it, so
            the same seed always reproduces the same buckets.
        family: Projection family, see :class:`HashFamily`.
        workers: Threads used to scan tables during a query. ``1`` scans
            sequentially in the calling thread.
    """

    dimension: int
    bucket_width: float = 4.0
    functions_per_table: int = 4
    table_count: int = 8
    seed: int = 42
    family: HashFamily = HashFamily.EUCLIDEAN
    workers: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.dimension, bool) or not isinstance(self.dimension, int):
            raise ConfigurationError("dimension must be an integer")
        if self.dimension <= 0:
            raise ConfigurationError("dimension must be greater than zero")
        if not math.isfinite(self.bucket_width) or self.bucket_width <= 0:
            raise ConfigurationError("bucket_width must be a finite number greater than zero")
        if self.functions_per_table <= 0:
            raise ConfigurationError("functions_per_table must be greater than zero")
        if self.table_count <= 0:
            raise ConfigurationError("table_count must be greater than zero")
        if self.workers <= 0:
            raise ConfigurationError("workers must be greater than zero")
        if self.seed < 0:
            raise ConfigurationError("seed must be non-negative")
        # frozen: bypass __setattr__ to normalise the family
        object.__setattr__(self, "family", HashFamily.resolve(self.family))
        object.__setattr__(self, "bucket_width", float(self.bucket_width))

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["family"] = self.family.value
        return data
