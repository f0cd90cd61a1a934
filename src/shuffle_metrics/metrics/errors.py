"""
Exceptions raised by the metrics core.
"""

from __future__ import annotations

from collections.abc import Sequence


class MetricsError(Exception):
    """Base exception for metrics registry errors."""

    pass


class UnknownScopeError(MetricsError, KeyError):
    """Raised when a snapshot is requested for a scope that doesn't exist."""

    def __init__(self, scope: str) -> None:
        self.scope = scope
        super().__init__(f"Unknown metrics scope: {scope}")

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidIncrementError(MetricsError, ValueError):
    """Raised when a monotonic counter is given a negative or non-finite delta."""

    def __init__(self, name: str, delta: float) -> None:
        self.name = name
        self.delta = delta
        super().__init__(f"Counter {name} cannot be incremented by {delta}")


class ReservedLabelError(MetricsError, ValueError):
    """Raised when a reserved label value (the ALL host) is written directly."""

    def __init__(self, name: str, label: str, value: str) -> None:
        self.name = name
        self.label = label
        self.value = value
        super().__init__(f"{name}: {label}={value!r} is reserved for the aggregate series")


class LabelCardinalityError(MetricsError, ValueError):
    """Raised when label values don't match a family's label schema."""

    def __init__(self, name: str, expected: Sequence[str], got: Sequence[str]) -> None:
        self.name = name
        self.expected = tuple(expected)
        self.got = tuple(got)
        super().__init__(
            f"Metric {name} expects labels {list(self.expected)}, got values {list(self.got)}"
        )


class MetricNotFoundError(MetricsError, KeyError):
    """Raised when a metric (or source method) is not part of a catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Metric not found: {name}")

    def __str__(self) -> str:
        return str(self.args[0])


class RegistryNotInitializedError(MetricsError, RuntimeError):
    """Raised when metric families are accessed before init()."""

    def __init__(self) -> None:
        super().__init__("Metrics registry has not been initialized")
