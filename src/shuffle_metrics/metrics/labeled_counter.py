"""
Label-dimensioned monotonic counters.

A LabeledCounter is one metric family: a name, an ordered label schema, and
one CounterCell per distinct label tuple. Cells are created lazily on first
reference and live until clear().

Families whose schema contains the host label keep an aggregate series in
which the host component is replaced by ``ALL``. Every increment updates the
per-host cell and the aggregate cell under the same family lock, so readers
never observe one without the other. The aggregate series is written only
through that rollup; ALL is rejected as a host value on increment.

Example:
    counter = LabeledCounter("total_hadoop_write_data", ("tags", "storage_host"))
    counter.inc(("GRPC", "hdfs1"), 1000)
    counter.get(("GRPC", "hdfs1"))  # 1000.0
    counter.get(("GRPC", "ALL"))  # 1000.0
"""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .errors import InvalidIncrementError, LabelCardinalityError, ReservedLabelError

STORAGE_HOST_LABEL = "storage_host"
STORAGE_HOST_LABEL_ALL = "ALL"

LabelValues = tuple[str, ...]


@dataclass
class CounterCell:
    """Accumulator for one label tuple. Guarded by the owning family's lock."""

    label_values: LabelValues
    value: float = 0.0


class LabeledCounter:
    """
    Thread-safe counter family keyed by label tuples.

    One lock per family covers both the tuple index and the cell values.
    That makes insert-if-absent trivially single-creation and keeps the
    host rollup atomic with respect to series() readers.
    """

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        description: str = "",
        aggregate_label: str | None = STORAGE_HOST_LABEL,
    ) -> None:
        self.name = name
        self.label_names: tuple[str, ...] = tuple(label_names)
        self.description = description
        self._lock = threading.Lock()
        self._cells: dict[LabelValues, CounterCell] = {}

        # Index of the host component that gets replaced by ALL, if any
        self._aggregate_index: int | None = None
        if aggregate_label is not None and aggregate_label in self.label_names:
            self._aggregate_index = self.label_names.index(aggregate_label)

    @property
    def has_rollup(self) -> bool:
        return self._aggregate_index is not None

    def _key(self, label_values: Iterable[str]) -> LabelValues:
        key = tuple(str(v) for v in label_values)
        if len(key) != len(self.label_names):
            raise LabelCardinalityError(self.name, self.label_names, key)
        return key

    def _aggregate_key(self, key: LabelValues) -> LabelValues | None:
        idx = self._aggregate_index
        if idx is None:
            return None
        if key[idx] == STORAGE_HOST_LABEL_ALL:
            raise ReservedLabelError(self.name, self.label_names[idx], key[idx])
        return key[:idx] + (STORAGE_HOST_LABEL_ALL,) + key[idx + 1 :]

    def _resolve_locked(self, key: LabelValues) -> CounterCell:
        """Look up or create the cell for key (must hold lock)."""
        cell = self._cells.get(key)
        if cell is None:
            cell = CounterCell(label_values=key)
            self._cells[key] = cell
        return cell

    def resolve(self, label_values: Iterable[str] = ()) -> CounterCell:
        """Return the cell for a label tuple, creating it if absent."""
        key = self._key(label_values)
        with self._lock:
            return self._resolve_locked(key)

    def labels(self, *label_values: str) -> CounterCell:
        """Varargs form of resolve()."""
        return self.resolve(label_values)

    def inc(self, label_values: Iterable[str] = (), delta: float = 1.0) -> None:
        """
        Add delta to a series and to its ALL aggregate.

        A zero delta is valid and only forces creation of the series (and
        its aggregate), so a freshly registered host is visible before any
        traffic.

        Args:
            label_values: Values matching the family's label schema
            delta: Finite, non-negative amount to add

        Raises:
            InvalidIncrementError: If delta is negative, NaN or infinite
            LabelCardinalityError: If the tuple doesn't match the schema
            ReservedLabelError: If the host component is ALL
        """
        if not math.isfinite(delta) or delta < 0:
            raise InvalidIncrementError(self.name, delta)
        key = self._key(label_values)
        aggregate_key = self._aggregate_key(key)

        with self._lock:
            self._resolve_locked(key).value += delta
            if aggregate_key is not None:
                self._resolve_locked(aggregate_key).value += delta

    def get(self, label_values: Iterable[str] = ()) -> float:
        """Current value of a series. Creates a zero-valued series if absent."""
        key = self._key(label_values)
        with self._lock:
            return self._resolve_locked(key).value

    def series(self) -> list[tuple[LabelValues, float]]:
        """Copy of all series in creation order."""
        with self._lock:
            return [(cell.label_values, cell.value) for cell in self._cells.values()]

    def clear(self) -> None:
        """Drop every series."""
        with self._lock:
            self._cells.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cells)

    def __repr__(self) -> str:
        return f"LabeledCounter(name={self.name!r}, labels={list(self.label_names)})"
