"""
lshann - in-memory approximate nearest neighbour search with LSH.

Vectors are bucketed by random projection hash functions across several
independently seeded tables; a query gathers the vectors sharing a bucket
with the probe and ranks them exactly with a correlation metric.
"""

from __future__ import annotations

from lshann._config.config import HashFamily, HashSignatures, IndexConfig
from lshann.core.main import LSHIndex
from lshann.exceptions import (
    ConfigurationError,
    LSHError,
    NotFoundError,
    ValidationError,
)
from lshann.similarity import INCOMPARABLE, Correlation, get_correlation, is_incomparable
from lshann.vector import Vector

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "Correlation",
    "HashFamily",
    "HashSignatures",
    "INCOMPARABLE",
    "IndexConfig",
    "LSHError",
    "LSHIndex",
    "NotFoundError",
    "ValidationError",
    "Vector",
    "get_correlation",
    "is_incomparable",
    "__version__",
]
