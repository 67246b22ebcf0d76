from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from lshann.exceptions import NotFoundError
from lshann.vector import Vector


class VectorStore:
    """
    Authoritative ``key -> Vector`` store backing an index.

    Vectors live in an arena of slots addressed by integer handles. Hash
    tables reference handles, so a key can be re-bucketed or removed without
    the tables holding the vector itself. Freed slots are recycled.
    """

    def __init__(self) -> None:
        self._slots: List[Optional[Vector]] = []
        self._handles: Dict[str, int] = {}
        self._free: List[int] = []

    def reserve(self) -> int:
        """Claim an empty slot and return its handle."""
        if self._free:
            return self._free.pop()
        self._slots.append(None)
        return len(self._slots) - 1

    def put(self, handle: int, vector: Vector) -> None:
        """Publish ``vector`` under its key in a reserved or owned slot."""
        if vector.key is None:
            raise ValueError("Stored vectors must carry a key")
        self._slots[handle] = vector
        self._handles[vector.key] = handle

    def release(self, handle: int) -> None:
        """Empty a slot and make it available again."""
        vector = self._slots[handle]
        if vector is not None and self._handles.get(vector.key) == handle:
            del self._handles[vector.key]
        self._slots[handle] = None
        self._free.append(handle)

    def handle_of(self, key: str) -> Optional[int]:
        return self._handles.get(key)

    def vector_at(self, handle: int) -> Optional[Vector]:
        if 0 <= handle < len(self._slots):
            return self._slots[handle]
        return None

    def get(self, key: str) -> Vector:
        handle = self._handles.get(key)
        if handle is None:
            raise NotFoundError(key)
        return self._slots[handle]  # type: ignore[return-value]

    def keys(self) -> List[str]:
        return list(self._handles)

    def clear(self) -> None:
        self._slots.clear()
        self._handles.clear()
        self._free.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))

    def __len__(self) -> int:
        return len(self._handles)
