"""
High-Level LSH Index Orchestrator

This module provides the LSHIndex class that ties together all LSH components:
- Signature generation using random projections (HashFunctionFamily)
- Bucket management across L in-memory hash tables (HashTable)
- The authoritative key -> vector store (VectorStore)
- Candidate retrieval followed by exact scoring with a correlation metric

Architecture overview:
    1. Vector → one signature per table → handle added to L buckets
    2. Vector → VectorStore slot addressed by the same handle
    3. Query → probe signatures → union of buckets → score → rank → top-k

Every update touches all L+1 structures. Signatures are staged before any
mutation and applied under the write side of a readers-writer lock, with
rollback if applying fails, so queries never observe a half-indexed key.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)

from lshann._config.config import HashFamily, HashSignatures, IndexConfig
from lshann.exceptions import NotFoundError, ValidationError
from lshann.hash.lsh import HashFunctionFamily
from lshann.hash.table import HashTable
from lshann.io.parquet import iter_parquet_vectors
from lshann.similarity import Correlation, get_correlation, top_k
from lshann.storage import VectorStore
from lshann.utils.locks import ReadWriteLock
from lshann.vector import Vector, VectorLike, as_vector

logger = logging.getLogger(__name__)

# List of (key, score) tuples returned by queries
ScoredKeys = List[Tuple[str, float]]

# Anything insert_many() accepts: a mapping or an iterable of pairs
VectorSource = Union[Mapping, Iterable[Tuple[str, VectorLike]]]

# Generic loader function that yields (key, vector) pairs
Loader = Callable[..., Iterable[Tuple[str, VectorLike]]]


class LSHIndex:
    """
    In-memory approximate nearest neighbour index built on LSH.

    The LSHIndex class has three core responsibilities:

    1. **Hashing**: map each vector to one signature per table
    2. **Bucket management**: keep L tables and the vector store consistent
    3. **Query processing**: gather candidates from matching buckets and rank
       them exactly with a :class:`~lshann.similarity.Correlation`

    Parameters
    ----------
    config : IndexConfig
        Validated configuration. Use :meth:`create` to build one from
        keyword arguments.

    Examples
    --------
    >>> index = LSHIndex.create(dimension=2, bucket_width=1.0,
    ...                         functions_per_table=1, table_count=1, seed=7)
    >>> index.insert("a", [0.0, 0.0])
    >>> index.query([0.0, 0.0], 1, Correlation.EUCLIDEAN)
    [('a', 0.0)]
    """

    def __init__(self, config: IndexConfig) -> None:
        self._config = config
        self._family = HashFunctionFamily(config)
        self._tables = [
            HashTable(table_id, signature_fn)
            for table_id, signature_fn in enumerate(self._family.tables)
        ]
        self._store = VectorStore()
        self._lock = ReadWriteLock()
        self._executor: Optional[ThreadPoolExecutor] = None
        if config.workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=config.workers, thread_name_prefix="lshann-scan"
            )

        logger.info(
            "Created LSH index: dim=%d, w=%s, k=%d, L=%d, family=%s, seed=%d",
            config.dimension,
            config.bucket_width,
            config.functions_per_table,
            config.table_count,
            config.family.value,
            config.seed,
        )

    @classmethod
    def create(
        cls,
        dimension: int,
        bucket_width: float = 4.0,
        functions_per_table: int = 4,
        table_count: int = 8,
        seed: int = 42,
        *,
        family: Union[HashFamily, str] = HashFamily.EUCLIDEAN,
        workers: int = 1,
    ) -> "LSHIndex":
        """
        Validate parameters and build an empty index.

        Parameters
        ----------
        dimension : int
            Dimensionality of every vector the index will hold.
        bucket_width : float, default=4.0
            Slot width ``w`` of the projection hash. Larger = more recall,
            more candidates.
        functions_per_table : int, default=4
            ``k``, hash functions per table signature. Larger = purer buckets.
        table_count : int, default=8
            ``L``, number of independently seeded tables. Larger = more recall.
        seed : int, default=42
            Root seed; the same seed reproduces the same buckets.
        family : HashFamily or str, default="euclidean"
            Projection family, see :class:`~lshann.HashFamily`.
        workers : int, default=1
            Threads used to scan tables during a query.

        Raises
        ------
        ConfigurationError
            If any parameter is out of range.
        """
        config = IndexConfig(
            dimension=dimension,
            bucket_width=bucket_width,
            functions_per_table=functions_per_table,
            table_count=table_count,
            seed=seed,
            family=family,
            workers=workers,
        )
        return cls(config)

    @property
    def config(self) -> IndexConfig:
        return self._config

    @property
    def dimension(self) -> int:
        return self._config.dimension

    def close(self) -> None:
        """Shut down the query worker pool, if any. The index stays usable sequentially."""
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "LSHIndex":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return (
            "LSHIndex("
            f"dimension={self._config.dimension}, "
            f"bucket_width={self._config.bucket_width}, "
            f"functions_per_table={self._config.functions_per_table}, "
            f"table_count={self._config.table_count}, "
            f"size={len(self._store)}"
            ")"
        )

    # ---------------------------------------------------------------------
    # Mutation API
    # ---------------------------------------------------------------------

    def insert(self, key: str, vector: VectorLike) -> None:
        """
        Index ``vector`` under ``key``.

        The vector is validated and hashed into every table before anything
        is mutated; the update itself is all-or-nothing across the L tables
        and the store. Inserting an existing key replaces its vector.

        Parameters
        ----------
        key : str
            Non-empty identifier, unique within the index.
        vector : sequence of float, mapping of int to float, or Vector
            Dense coordinates or a sparse ``index -> value`` mapping with
            exactly ``dimension`` coordinates.

        Raises
        ------
        ValidationError
            If the key is empty or the vector does not fit the index.
        """
        self._check_key(key)
        prepared = self._prepare_vector(vector, key=key)
        staged = self._signatures(prepared)

        with self._lock.write():
            handle = self._store.handle_of(key)
            if handle is None:
                self._apply_insert(prepared, staged)
            else:
                self._apply_replace(handle, prepared, staged)

        logger.debug("Indexed key %r", key)

    def insert_many(self, pairs: VectorSource) -> int:
        """
        Bulk-insert ``(key, vector)`` pairs from any iterable source.

        Accepts a mapping, a list of pairs or a generator (for example the
        output of :func:`lshann.io.synthetic.generate` or a Parquet stream).
        Each pair is inserted atomically on its own; a failure stops the
        load and leaves earlier pairs indexed.

        Returns
        -------
        int
            Number of pairs inserted.
        """
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        count = 0
        for item in items:
            if isinstance(item, Vector):
                if item.key is None:
                    raise ValidationError("Vectors loaded without a pair must carry a key")
                self.insert(item.key, item)
            else:
                key, vector = item
                self.insert(key, vector)
            count += 1
        logger.debug("Bulk-loaded %d vectors", count)
        return count

    def bulk_load(self, *, format: str = "parquet", **loader_kwargs: Any) -> int:
        """
        Bulk-insert vectors using one of the built-in IO helpers.

        Supported formats:
            - "parquet" / "pq": :func:`lshann.io.parquet.iter_parquet_vectors`

        Raises
        ------
        ValueError
            If format is not supported.
        ImportError
            If required dependencies for format are not installed.
        """
        loader = self._resolve_loader(format)
        return self.insert_many(loader(**loader_kwargs))

    def remove(self, key: str, *, strict: bool = False) -> bool:
        """
        Remove ``key`` from every table and from the store.

        Idempotent: removing an absent key is a no-op that returns False,
        unless ``strict`` is set.

        Raises
        ------
        NotFoundError
            If ``strict`` is True and the key is not indexed.
        """
        with self._lock.write():
            handle = self._store.handle_of(key)
            if handle is None:
                if strict:
                    raise NotFoundError(key)
                return False

            stored = self._store.vector_at(handle)
            staged = self._signatures(stored)
            self._unlink(handle, staged)
            self._store.release(handle)

        logger.debug("Removed key %r", key)
        return True

    def clear(self) -> None:
        """Drop every vector and bucket. Hash functions are kept."""
        with self._lock.write():
            for table in self._tables:
                table.clear()
            self._store.clear()
        logger.debug("Cleared index")

    # ---------------------------------------------------------------------
    # Lookup API
    # ---------------------------------------------------------------------

    def get(self, key: str) -> Vector:
        """
        Return the stored vector of ``key``.

        Raises
        ------
        NotFoundError
            If the key is not indexed.
        """
        with self._lock.read():
            return self._store.get(key)

    def keys(self) -> List[str]:
        with self._lock.read():
            return self._store.keys()

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def signatures(self, vector: VectorLike) -> HashSignatures:
        """One signature per table for ``vector``, in table order."""
        return self._signatures(self._prepare_vector(vector))

    # ---------------------------------------------------------------------
    # Query API
    # ---------------------------------------------------------------------

    def candidates(self, vector: VectorLike, *, exclude: Optional[str] = None) -> Set[str]:
        """
        Keys sharing at least one table bucket with ``vector``, before ranking.

        Parameters
        ----------
        vector : sequence of float, mapping of int to float, or Vector
            Probe vector.
        exclude : str, optional
            Key to leave out, typically the probe's own key.
        """
        probe = self._prepare_vector(vector)
        staged = self._signatures(probe)
        with self._lock.read():
            handles = self._collect(staged, exclude)
            return {self._store.vector_at(handle).key for handle in handles}

    def query(
        self,
        vector: VectorLike,
        k: int = 10,
        metric: Union[Correlation, str] = Correlation.EUCLIDEAN,
        *,
        exclude: Optional[str] = None,
    ) -> ScoredKeys:
        """
        Retrieve the ``k`` best-scoring indexed vectors near ``vector``.

        The method:
            1. Hashes the probe vector once per table
            2. Unions the matching buckets of all tables (deduplicated)
            3. Scores every candidate against the probe with ``metric``
            4. Drops incomparable (NaN) scores
            5. Sorts ascending for distances, descending for similarities,
               ties broken by key, and keeps the first ``k``

        Parameters
        ----------
        vector : sequence of float, mapping of int to float, or Vector
            Probe vector of dimension ``dimension``.
        k : int, default=10
            Maximum number of results.
        metric : Correlation or str, default=Correlation.EUCLIDEAN
            Correlation used for exact scoring.
        exclude : str, optional
            Key to leave out of the results, typically the probe's own key.

        Returns
        -------
        List[Tuple[str, float]]
            ``(key, score)`` pairs, best first, at most ``k`` of them.

        Raises
        ------
        ValueError
            If ``k`` is not positive or the metric is unknown.
        ValidationError
            If the probe vector does not fit the index.
        """
        if k <= 0:
            raise ValueError("k must be greater than zero")
        correlation = get_correlation(metric)
        probe = self._prepare_vector(vector)
        staged = self._signatures(probe)

        with self._lock.read():
            handles = self._collect(staged, exclude)
            scored = []
            for handle in handles:
                candidate = self._store.vector_at(handle)
                scored.append((candidate.key, correlation.score(probe, candidate)))

        results = top_k(scored, k=k, metric=correlation)
        logger.debug(
            "Query scored %d candidates with %s, returning %d",
            len(scored),
            correlation.value,
            len(results),
        )
        return results

    def stats(self) -> Dict[str, Any]:
        """
        Return a configuration and occupancy snapshot for monitoring and debugging.

        Returns
        -------
        Dict[str, Any]
            Configuration entries (see :class:`IndexConfig`) plus:
            - size: number of indexed vectors
            - buckets: bucket count per table
            - largest_bucket: largest bucket size per table
        """
        with self._lock.read():
            info = self._config.as_dict()
            info["size"] = len(self._store)
            info["buckets"] = [table.bucket_count for table in self._tables]
            info["largest_bucket"] = [table.largest_bucket for table in self._tables]
            return info

    # ---------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------

    @staticmethod
    def _check_key(key: str) -> None:
        if not isinstance(key, str) or not key:
            raise ValidationError(f"Vector key must be a non-empty string; received {key!r}")

    def _prepare_vector(self, vector: VectorLike, key: Optional[str] = None) -> Vector:
        """
        Validate and normalize input vector to a :class:`Vector` of the index dimension.

        Raises
        ------
        ValidationError
            If the dimension does not match or values are not finite numbers.
        """
        return as_vector(vector, self._config.dimension, key=key)

    def _signatures(self, vector: Vector) -> HashSignatures:
        return self._family.hash_vector(vector)

    def _apply_insert(self, vector: Vector, staged: HashSignatures) -> None:
        handle = self._store.reserve()
        try:
            self._link(handle, staged)
        except Exception:
            self._store.release(handle)
            raise
        self._store.put(handle, vector)

    def _apply_replace(self, handle: int, vector: Vector, staged: HashSignatures) -> None:
        previous = self._store.vector_at(handle)
        previous_staged = self._signatures(previous)
        self._unlink(handle, previous_staged)
        try:
            self._link(handle, staged)
        except Exception:
            self._link(handle, previous_staged)
            raise
        self._store.put(handle, vector)

    def _link(self, handle: int, staged: HashSignatures) -> None:
        """Add ``handle`` to its bucket in every table, undoing partial work on failure."""
        applied: List[HashTable] = []
        try:
            for table, signature in zip(self._tables, staged):
                table.insert(handle, signature)
                applied.append(table)
        except Exception:
            logger.error(
                "Failed to index handle %d after %d of %d tables; rolling back",
                handle,
                len(applied),
                len(self._tables),
            )
            for table in applied:
                table.remove(handle, staged[table.table_id])
            raise

    def _unlink(self, handle: int, staged: HashSignatures) -> None:
        for table, signature in zip(self._tables, staged):
            table.remove(handle, signature)

    def _collect(self, staged: HashSignatures, exclude: Optional[str]) -> Set[int]:
        """
        Union of the probe's buckets across all tables.

        With a worker pool the table scans run in parallel; ``map`` only
        returns once every scan has finished.
        """
        pairs = list(zip(self._tables, staged))
        if self._executor is not None and len(pairs) > 1:
            buckets: Iterable[FrozenSet[int]] = self._executor.map(
                lambda pair: pair[0].candidates(pair[1]), pairs
            )
        else:
            buckets = [table.candidates(signature) for table, signature in pairs]

        handles: Set[int] = set()
        for bucket in buckets:
            handles.update(bucket)

        if exclude is not None:
            excluded = self._store.handle_of(exclude)
            if excluded is not None:
                handles.discard(excluded)
        return handles

    def _resolve_loader(self, format: str) -> Loader:
        """
        Map a user-facing format string to the corresponding loader callable.

        Raises
        ------
        ValueError
            If the format is not supported.
        """
        normalized = format.lower()
        if normalized in {"parquet", "pq"}:
            return iter_parquet_vectors
        raise ValueError(f"Unsupported format '{format}'; expected one of: parquet, pq")
