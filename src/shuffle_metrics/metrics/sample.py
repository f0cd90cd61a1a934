"""
Exposed series values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class MetricKind(StrEnum):
    """Types of metric families."""

    COUNTER = "counter"  # Monotonically increasing
    GAUGE = "gauge"  # Point-in-time value


@dataclass(frozen=True)
class Sample:
    """One series in a scope snapshot."""

    name: str
    label_values: tuple[str, ...]
    value: float
    kind: MetricKind = MetricKind.GAUGE

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape used by the JSON endpoints."""
        return {
            "name": self.name,
            "labelValues": list(self.label_values),
            "value": self.value,
        }
