from __future__ import annotations

from pathlib import Path
from typing import Iterator, Tuple

import numpy as np
from numpy.typing import NDArray

try:
    import pyarrow.parquet as pq  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - optional dependency
    pq = None  # type: ignore[assignment]

DEFAULT_PARQUET_BATCH_SIZE = 10_000


def iter_parquet_vectors(
    source: Path | str,
    *,
    key_column: str = "key",
    vector_column: str = "vector",
    batch_size: int = DEFAULT_PARQUET_BATCH_SIZE,
) -> Iterator[Tuple[str, NDArray[np.float64]]]:
    """
    Stream ``(key, vector)`` pairs from a Parquet file.

    The file is read incrementally using ``pyarrow`` so that large datasets can be
    bulk-loaded without materialising the whole table.

    Parameters
    ----------
    source:
        Path to the Parquet file on disk.
    key_column:
        Name of the column holding vector keys. Values are converted with ``str``.
    vector_column:
        Name of the column holding dense vectors stored as arrays/lists.
    batch_size:
        Number of rows to read per iteration.

    Yields
    ------
    Iterator[Tuple[str, NDArray[np.float64]]]
        One pair per row, ready for :meth:`lshann.LSHIndex.insert_many`.

    Raises
    ------
    ImportError
        If ``pyarrow`` is not installed.
    FileNotFoundError
        If the specified file does not exist.
    ValueError
        If a column is missing or a row holds an empty vector.
    """
    if pq is None:
        raise ImportError(
            "pyarrow is required to stream vectors from Parquet files. "
            "Install it via `pip install lshann[parquet]`."
        )

    path = Path(source).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Parquet source '{path}' does not exist")

    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")

    parquet_file = pq.ParquetFile(path)
    schema = parquet_file.schema_arrow

    for column in (key_column, vector_column):
        if schema.get_field_index(column) == -1:
            raise ValueError(
                f"Column '{column}' was not found in Parquet schema {schema.names}"
            )

    for batch in parquet_file.iter_batches(
        batch_size=batch_size, columns=[key_column, vector_column]
    ):
        if batch.num_rows == 0:
            continue

        keys = batch.column(0).to_pylist()
        rows = batch.column(1).to_pylist()

        for key, row in zip(keys, rows):
            if row is None or len(row) == 0:
                raise ValueError(f"Encountered empty vector for key {key!r}")
            yield str(key), np.asarray(row, dtype=np.float64)
