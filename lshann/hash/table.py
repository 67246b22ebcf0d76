"""
In-memory LSH hash table.

A table maps each :data:`~lshann._config.config.HashSignature` to the bucket
of entries that hashed to it. Entries are the integer handles handed out by
:class:`~lshann.storage.VectorStore`, not the vectors themselves, so tables
never own vector data and removing an entry is a constant-time set update.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Set

from lshann._config.config import HashSignature
from lshann.hash.lsh import SignatureFunction
from lshann.vector import Vector

_EMPTY: FrozenSet[int] = frozenset()


class HashTable:
    """One of the ``L`` tables of an index."""

    def __init__(self, table_id: int, signature_fn: SignatureFunction) -> None:
        self.table_id = table_id
        self.signature_fn = signature_fn
        self._buckets: Dict[HashSignature, Set[int]] = {}
        self._entries = 0

    def signature(self, vector: Vector) -> HashSignature:
        return self.signature_fn(vector)

    def insert(self, handle: int, signature: HashSignature) -> None:
        """Add ``handle`` to the bucket of ``signature``, creating the bucket if needed."""
        bucket = self._buckets.setdefault(signature, set())
        if handle not in bucket:
            bucket.add(handle)
            self._entries += 1

    def remove(self, handle: int, signature: HashSignature) -> bool:
        """
        Drop ``handle`` from the bucket of ``signature``.

        Empty buckets are deleted. Returns False when the handle was not there.
        """
        bucket = self._buckets.get(signature)
        if bucket is None or handle not in bucket:
            return False
        bucket.discard(handle)
        self._entries -= 1
        if not bucket:
            del self._buckets[signature]
        return True

    def candidates(self, signature: HashSignature) -> FrozenSet[int]:
        """Handles sharing exactly ``signature``."""
        bucket = self._buckets.get(signature)
        if not bucket:
            return _EMPTY
        return frozenset(bucket)

    def clear(self) -> None:
        self._buckets.clear()
        self._entries = 0

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    @property
    def largest_bucket(self) -> int:
        return max((len(bucket) for bucket in self._buckets.values()), default=0)

    def __len__(self) -> int:
        return self._entries

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return (
            f"HashTable(table_id={self.table_id}, buckets={self.bucket_count}, "
            f"entries={self._entries})"
        )
