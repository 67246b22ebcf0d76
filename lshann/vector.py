"""
Keyed, fixed-dimension vectors.

A :class:`Vector` is either *dense* (one float per coordinate) or *sparse*
(only the non-zero coordinates are stored as sorted index/value arrays).
Both layouts are immutable once built: the backing numpy arrays are flagged
read-only so a vector held by the index cannot be modified behind its back.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import FrozenSet, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from lshann.exceptions import ValidationError

SparseValues = Mapping  # Mapping[int, float]
VectorValues = Union[Sequence[float], NDArray[np.floating], SparseValues]
VectorLike = Union["Vector", VectorValues]


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


class Vector:
    """
    An immutable point of a fixed dimension, optionally identified by a key.

    Use :meth:`dense` or :meth:`sparse` to build one; the constructor expects
    already validated arrays.
    """

    __slots__ = ("_key", "_dimension", "_dense", "_indices", "_data")

    def __init__(
        self,
        key: Optional[str],
        dimension: int,
        *,
        dense: Optional[NDArray[np.float64]] = None,
        indices: Optional[NDArray[np.int64]] = None,
        data: Optional[NDArray[np.float64]] = None,
    ) -> None:
        self._key = key
        self._dimension = dimension
        self._dense = dense
        self._indices = indices
        self._data = data

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def dense(cls, key: Optional[str], values: Sequence[float]) -> "Vector":
        """Build a dense vector; its dimension is ``len(values)``."""
        try:
            arr = np.array(values, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Vector values must be numeric: {exc}") from None
        if arr.ndim != 1:
            raise ValidationError(
                f"Vector values must be one-dimensional; received shape {arr.shape}"
            )
        if arr.shape[0] == 0:
            raise ValidationError("Vector must have at least one coordinate")
        if not np.all(np.isfinite(arr)):
            raise ValidationError("Vector values must be finite")
        return cls(key, int(arr.shape[0]), dense=_readonly(arr))

    @classmethod
    def sparse(
        cls, key: Optional[str], values: SparseValues, dimension: int
    ) -> "Vector":
        """
        Build a sparse vector from an ``index -> value`` mapping.

        Explicit zeros are dropped. Every index must lie in ``[0, dimension)``.
        """
        if dimension <= 0:
            raise ValidationError("Sparse vector dimension must be greater than zero")

        pairs = []
        for raw_index, raw_value in values.items():
            if isinstance(raw_index, bool) or not isinstance(raw_index, (int, np.integer)):
                raise ValidationError(
                    f"Sparse vector indices must be integers; received {raw_index!r}"
                )
            index = int(raw_index)
            if not 0 <= index < dimension:
                raise ValidationError(
                    f"Sparse index {index} is outside dimension {dimension}"
                )
            try:
                value = float(raw_value)
            except (TypeError, ValueError):
                raise ValidationError(
                    f"Vector values must be numeric; received {raw_value!r}"
                ) from None
            if not np.isfinite(value):
                raise ValidationError("Vector values must be finite")
            if value != 0.0:
                pairs.append((index, value))

        pairs.sort()
        indices = np.array([i for i, _ in pairs], dtype=np.int64)
        data = np.array([v for _, v in pairs], dtype=np.float64)
        return cls(key, dimension, indices=_readonly(indices), data=_readonly(data))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def key(self) -> Optional[str]:
        return self._key

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_sparse(self) -> bool:
        return self._dense is None

    def with_key(self, key: Optional[str]) -> "Vector":
        """Return the same coordinates under another key (arrays are shared)."""
        return Vector(
            key,
            self._dimension,
            dense=self._dense,
            indices=self._indices,
            data=self._data,
        )

    def to_dense(self) -> NDArray[np.float64]:
        """Dense float64 copy of the coordinates."""
        if self._dense is not None:
            return self._dense.copy()
        out = np.zeros(self._dimension, dtype=np.float64)
        out[self._indices] = self._data
        return out

    def items(self):
        """``(index, value)`` pairs of the stored coordinates."""
        if self._dense is not None:
            return zip(range(self._dimension), self._dense.tolist())
        return zip(self._indices.tolist(), self._data.tolist())

    def support_indices(self) -> NDArray[np.int64]:
        """
        Sorted indices this vector carries a value for.

        A dense vector carries every coordinate, a sparse one only its
        stored (non-zero) entries.
        """
        if self._dense is not None:
            return np.arange(self._dimension, dtype=np.int64)
        return self._indices

    def support(self) -> FrozenSet[int]:
        return frozenset(self.support_indices().tolist())

    def values_at(self, indices: NDArray[np.int64]) -> NDArray[np.float64]:
        """Values at the given sorted ``indices``, ``0.0`` where nothing is stored."""
        if self._dense is not None:
            return self._dense[indices]
        out = np.zeros(indices.shape[0], dtype=np.float64)
        if self._indices.shape[0] == 0:
            return out
        present = np.isin(indices, self._indices, assume_unique=True)
        out[present] = self._data[np.searchsorted(self._indices, indices[present])]
        return out

    def nonzero(self) -> FrozenSet[int]:
        """Indices whose value is not zero."""
        if self._dense is not None:
            return frozenset(np.flatnonzero(self._dense).tolist())
        return frozenset(self._indices.tolist())

    def project(self, directions: NDArray[np.float64]) -> NDArray[np.float64]:
        """Dot products with each row of a ``(n, dimension)`` direction matrix."""
        if self._dense is not None:
            return directions @ self._dense
        if self._indices.shape[0] == 0:
            return np.zeros(directions.shape[0], dtype=np.float64)
        return directions[:, self._indices] @ self._data

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self._dimension

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return (
            self._key == other._key
            and self._dimension == other._dimension
            and np.array_equal(self.to_dense(), other.to_dense())
        )

    def __hash__(self) -> int:
        return hash((self._key, self._dimension, tuple(self.items())))

    def __repr__(self) -> str:  # pragma: no cover - convenience
        layout = "sparse" if self.is_sparse else "dense"
        return f"Vector(key={self._key!r}, dimension={self._dimension}, {layout})"


def as_vector(
    value: VectorLike,
    dimension: int,
    key: Optional[str] = None,
) -> Vector:
    """
    Coerce ``value`` into a :class:`Vector` of exactly ``dimension`` coordinates.

    Accepts an existing :class:`Vector` (re-keyed when ``key`` is given), a
    mapping (sparse) or any array-like (dense).

    Raises:
        ValidationError: If the dimension does not match or values are invalid.
    """
    if isinstance(value, Vector):
        vector = value if key is None or key == value.key else value.with_key(key)
    elif isinstance(value, Mapping):
        vector = Vector.sparse(key, value, dimension)
    else:
        vector = Vector.dense(key, value)

    if vector.dimension != dimension:
        raise ValidationError(
            f"Vector must have dimension {dimension}; received {vector.dimension}"
        )
    return vector
