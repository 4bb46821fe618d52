"""
Row builders and the bounded per-field writer.

A row builder owns one output row of a fixed width. Each field writes into
its own slice of that row through a FeatureWriter, which refuses writes
outside the slice.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import numpy as np

from featurespec.errors import EncodingOverflow


class RowBuilder(ABC):
    """Accumulates the values of a single output row."""

    def __init__(self, width: int) -> None:
        self.width = width

    @abstractmethod
    def set(self, index: int, value: float) -> None:
        """Set the value at a global row index."""
        ...

    @abstractmethod
    def result(self) -> Any:
        """Return the finished row."""
        ...


class DenseRowBuilder(RowBuilder):
    """Builds a dense float64 numpy row; unwritten values stay zero."""

    def __init__(self, width: int) -> None:
        super().__init__(width)
        self._row = np.zeros(width, dtype=np.float64)

    def set(self, index: int, value: float) -> None:
        self._row[index] = value

    def result(self) -> np.ndarray:
        return self._row


class SparseRowBuilder(RowBuilder):
    """Builds a sparse row as an {offset: value} dict without zeros."""

    def __init__(self, width: int) -> None:
        super().__init__(width)
        self._values: dict[int, float] = {}

    def set(self, index: int, value: float) -> None:
        if value == 0.0:
            self._values.pop(index, None)
        else:
            self._values[index] = float(value)

    def result(self) -> dict[int, float]:
        return dict(sorted(self._values.items()))


ROW_BUILDERS: dict[str, type[RowBuilder]] = {
    "dense": DenseRowBuilder,
    "sparse": SparseRowBuilder,
}


class FeatureWriter:
    """
    Cursor over one field's slice ``[offset, offset + width)`` of a row.

    Transformers only see this writer. ``add`` writes at the cursor and
    advances it; ``add_at`` writes at a position relative to the slice start.
    Any write outside the slice raises EncodingOverflow.
    """

    def __init__(self, builder: RowBuilder, field: str, offset: int, width: int) -> None:
        self._builder = builder
        self.field = field
        self.offset = offset
        self.width = width
        self._cursor = 0

    def _check(self, index: int) -> None:
        if index < 0 or index >= self.width:
            raise EncodingOverflow(self.field, index, self.width)

    def add(self, value: float) -> None:
        """Write a value at the cursor and advance by one."""
        self._check(self._cursor)
        self._builder.set(self.offset + self._cursor, float(value))
        self._cursor += 1

    def add_many(self, values: Iterable[float]) -> None:
        """Write consecutive values starting at the cursor."""
        for value in values:
            self.add(value)

    def add_at(self, index: int, value: float) -> None:
        """Write a value at a slice-relative index without moving the cursor."""
        self._check(index)
        self._builder.set(self.offset + index, float(value))

    def skip(self, n: int = 1) -> None:
        """Leave ``n`` values at zero and advance the cursor."""
        if self._cursor + n > self.width:
            raise EncodingOverflow(self.field, self._cursor + n - 1, self.width)
        self._cursor += n

    @property
    def position(self) -> int:
        """Current slice-relative cursor position."""
        return self._cursor
