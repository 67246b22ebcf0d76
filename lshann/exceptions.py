"""
Exception hierarchy for the lshann package.

Every error raised on purpose by the index derives from :class:`LSHError`.
The concrete classes also inherit from the matching builtin (``ValueError``
or ``KeyError``) so callers that only know the builtin keep working.

Note that an *incomparable* pair of vectors is not an error: correlation
metrics report it as ``NaN`` and the index filters such candidates out.
"""

from __future__ import annotations


class LSHError(Exception):
    """Base class for all lshann errors."""


class ConfigurationError(LSHError, ValueError):
    """Raised when an index or hash family is created with invalid parameters."""


class ValidationError(LSHError, ValueError):
    """Raised when a vector does not fit the index (dimension, values, key)."""


class NotFoundError(LSHError, KeyError):
    """Raised by strict lookups and removals of a key that is not indexed."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Key {self.key!r} is not indexed"
