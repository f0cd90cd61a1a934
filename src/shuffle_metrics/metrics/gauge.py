"""
Gauges: signed values with concurrent delta updates.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence

from .errors import LabelCardinalityError
from .labeled_counter import LabelValues


class Gauge:
    """
    Thread-safe gauge.

    inc()/dec() from independent threads compose as exact sums; the read,
    add and write happen under one lock so no update is lost.

    Example:
        gauge = Gauge("in_flush_buffer_size")
        gauge.inc(1024)
        gauge.dec(512)
        gauge.get()  # 512.0
    """

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._value = 0.0
        self._lock = threading.Lock()

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def inc(self, delta: float = 1.0) -> None:
        with self._lock:
            self._value += delta

    def dec(self, delta: float = 1.0) -> None:
        with self._lock:
            self._value -= delta

    def get(self) -> float:
        with self._lock:
            return self._value

    def reset(self) -> None:
        self.set(0.0)

    def __repr__(self) -> str:
        return f"Gauge(name={self.name!r}, value={self.get()})"


class LabeledGauge:
    """
    Gauge family with a fixed set of label tuples.

    Used by the fixed-catalog sources, so series are declared up front
    and there is no aggregate rollup.
    """

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        description: str = "",
    ) -> None:
        self.name = name
        self.label_names: tuple[str, ...] = tuple(label_names)
        self.description = description
        self._lock = threading.Lock()
        self._values: dict[LabelValues, float] = {}

    def _key(self, label_values: Iterable[str]) -> LabelValues:
        key = tuple(str(v) for v in label_values)
        if len(key) != len(self.label_names):
            raise LabelCardinalityError(self.name, self.label_names, key)
        return key

    def declare(self, label_values: Iterable[str] = ()) -> None:
        """Create a zero-valued series if it isn't there yet."""
        key = self._key(label_values)
        with self._lock:
            self._values.setdefault(key, 0.0)

    def set(self, label_values: Iterable[str], value: float) -> None:
        key = self._key(label_values)
        with self._lock:
            self._values[key] = float(value)

    def inc(self, label_values: Iterable[str] = (), delta: float = 1.0) -> None:
        key = self._key(label_values)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + delta

    def dec(self, label_values: Iterable[str] = (), delta: float = 1.0) -> None:
        self.inc(label_values, -delta)

    def get(self, label_values: Iterable[str] = ()) -> float:
        key = self._key(label_values)
        with self._lock:
            return self._values.get(key, 0.0)

    def series(self) -> list[tuple[LabelValues, float]]:
        with self._lock:
            return list(self._values.items())

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
