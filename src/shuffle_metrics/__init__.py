"""
Shuffle server metrics.

In-memory accounting of storage write outcomes, written bytes and buffer
gauges for a shuffle server, exposed through four JSON snapshot scopes.
"""

from shuffle_metrics._version import __version__
from shuffle_metrics.metrics import (
    BufferAccounting,
    Gauge,
    LabeledCounter,
    MetricScope,
    MetricsRegistry,
    StorageWriteAccounting,
)

__all__ = [
    "__version__",
    "BufferAccounting",
    "Gauge",
    "LabeledCounter",
    "MetricScope",
    "MetricsRegistry",
    "StorageWriteAccounting",
]
