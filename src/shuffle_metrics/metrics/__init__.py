"""
Metrics accounting core for a shuffle server.

Provides label-dimensioned counters with host rollups, gauges, the process
registry with its four exposition scopes, and the storage write accounting
used by the flush path.
"""

from .errors import (
    InvalidIncrementError,
    LabelCardinalityError,
    MetricNotFoundError,
    MetricsError,
    RegistryNotInitializedError,
    ReservedLabelError,
    UnknownScopeError,
)
from .exposition import PROMETHEUS_CONTENT_TYPE, snapshot_payload, to_prometheus
from .gauge import Gauge, LabeledGauge
from .labeled_counter import (
    STORAGE_HOST_LABEL,
    STORAGE_HOST_LABEL_ALL,
    CounterCell,
    LabeledCounter,
)
from .registry import SERVER_CATALOG, FamilySpec, MetricScope, MetricsRegistry
from .sample import MetricKind, Sample
from .sources import (
    MetricSource,
    RpcMetricsSource,
    RuntimeMetricsSource,
    TransportMetricsSource,
)
from .storage_accounting import (
    LOCAL,
    LOCAL_STORAGE_HOST,
    BufferAccounting,
    LocalStorage,
    RemoteStorage,
    StorageLocation,
    StorageWriteAccounting,
    parse_storage_location,
    storage_host_from_path,
)

__all__ = [
    # Core types
    "CounterCell",
    "LabeledCounter",
    "Gauge",
    "LabeledGauge",
    "MetricKind",
    "Sample",
    "STORAGE_HOST_LABEL",
    "STORAGE_HOST_LABEL_ALL",
    # Registry
    "FamilySpec",
    "MetricScope",
    "MetricsRegistry",
    "SERVER_CATALOG",
    # Sources
    "MetricSource",
    "RuntimeMetricsSource",
    "RpcMetricsSource",
    "TransportMetricsSource",
    # Accounting
    "LOCAL",
    "LOCAL_STORAGE_HOST",
    "BufferAccounting",
    "LocalStorage",
    "RemoteStorage",
    "StorageLocation",
    "StorageWriteAccounting",
    "parse_storage_location",
    "storage_host_from_path",
    # Exposition
    "PROMETHEUS_CONTENT_TYPE",
    "snapshot_payload",
    "to_prometheus",
    # Errors
    "MetricsError",
    "UnknownScopeError",
    "InvalidIncrementError",
    "LabelCardinalityError",
    "ReservedLabelError",
    "MetricNotFoundError",
    "RegistryNotInitializedError",
]
