"""
Process metrics registry for a shuffle server.

Owns the server-scope counter and gauge families plus the fixed-catalog
sources behind the runtime, rpc and transport scopes. The registry is an
explicit object: the app factory (or a test) constructs one and hands it to
every producer and to the HTTP layer.

Lifecycle:
    registry = MetricsRegistry()
    registry.init("GRPC,ss_v5")   # builds the catalog
    registry.snapshot("server")   # -> list[Sample]
    registry.clear()              # drops everything; init() may run again
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import StrEnum

from .errors import MetricNotFoundError, RegistryNotInitializedError, UnknownScopeError
from .gauge import Gauge
from .labeled_counter import STORAGE_HOST_LABEL, LabeledCounter
from .sample import MetricKind, Sample
from .sources import (
    TAGS_LABEL,
    MetricSource,
    RpcMetricsSource,
    RuntimeMetricsSource,
    TransportMetricsSource,
)

logger = logging.getLogger(__name__)


class MetricScope(StrEnum):
    """Independently addressable exposition views."""

    SERVER = "server"
    RUNTIME = "runtime"
    RPC = "rpc"
    TRANSPORT = "transport"

    @classmethod
    def parse(cls, value: str | MetricScope) -> MetricScope:
        """Resolve a scope name, accepting the legacy jvm/grpc/netty aliases."""
        if isinstance(value, MetricScope):
            return value
        name = str(value).strip().lower()
        name = _SCOPE_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise UnknownScopeError(str(value)) from None


_SCOPE_ALIASES = {
    "jvm": "runtime",
    "grpc": "rpc",
    "netty": "transport",
}


# =============================================================================
# Server-scope catalog
# =============================================================================

TOTAL_RECEIVED_DATA = "total_received_data"
TOTAL_WRITE_DATA = "total_write_data"
TOTAL_WRITE_BLOCK = "total_write_block"
TOTAL_WRITE_TIME = "total_write_time"
TOTAL_WRITE_HANDLER = "total_write_handler"
TOTAL_WRITE_EXCEPTION = "total_write_exception"
TOTAL_WRITE_SLOW = "total_write_slow"
TOTAL_REQUIRE_BUFFER_FAILED = "total_require_buffer_failed"
TOTAL_READ_DATA = "total_read_data"
TOTAL_READ_LOCAL_DATA_FILE = "total_read_local_data_file"
TOTAL_READ_MEMORY_DATA = "total_read_memory_data"
TOTAL_LOCALFILE_WRITE_DATA = "total_localfile_write_data"
TOTAL_HADOOP_WRITE_DATA = "total_hadoop_write_data"

STORAGE_TOTAL_WRITE_LOCAL = "storage_total_write_local"
STORAGE_SUCCESS_WRITE_LOCAL = "storage_success_write_local"
STORAGE_FAILED_WRITE_LOCAL = "storage_failed_write_local"
STORAGE_RETRY_WRITE_LOCAL = "storage_retry_write_local"
STORAGE_TOTAL_WRITE_REMOTE = "storage_total_write_remote"
STORAGE_SUCCESS_WRITE_REMOTE = "storage_success_write_remote"
STORAGE_FAILED_WRITE_REMOTE = "storage_failed_write_remote"
STORAGE_RETRY_WRITE_REMOTE = "storage_retry_write_remote"

BUFFERED_DATA_SIZE = "buffered_data_size"
IN_FLUSH_BUFFER_SIZE = "in_flush_buffer_size"
USED_BUFFER_SIZE = "used_buffer_size"
READ_USED_BUFFER_SIZE = "read_used_buffer_size"
TOTAL_APP_NUM = "total_app_num"
TOTAL_PARTITION_NUM = "total_partition_num"
EVENT_QUEUE_SIZE = "event_queue_size"

REMOTE_LABELS = (TAGS_LABEL, STORAGE_HOST_LABEL)


@dataclass(frozen=True)
class FamilySpec:
    """Declaration of one server-scope family."""

    name: str
    kind: MetricKind
    label_names: tuple[str, ...] = ()
    description: str = ""


SERVER_CATALOG: tuple[FamilySpec, ...] = (
    FamilySpec(TOTAL_RECEIVED_DATA, MetricKind.COUNTER, description="Bytes received from clients"),
    FamilySpec(TOTAL_WRITE_DATA, MetricKind.COUNTER, description="Bytes flushed to storage"),
    FamilySpec(TOTAL_WRITE_BLOCK, MetricKind.COUNTER, description="Blocks flushed to storage"),
    FamilySpec(TOTAL_WRITE_TIME, MetricKind.COUNTER, description="Milliseconds spent writing"),
    FamilySpec(TOTAL_WRITE_HANDLER, MetricKind.COUNTER, description="Write handlers created"),
    FamilySpec(TOTAL_WRITE_EXCEPTION, MetricKind.COUNTER, description="Writes that raised"),
    FamilySpec(TOTAL_WRITE_SLOW, MetricKind.COUNTER, description="Writes above the slow threshold"),
    FamilySpec(TOTAL_REQUIRE_BUFFER_FAILED, MetricKind.COUNTER, description="Rejected buffer requests"),
    FamilySpec(TOTAL_READ_DATA, MetricKind.COUNTER, description="Bytes served to readers"),
    FamilySpec(TOTAL_READ_LOCAL_DATA_FILE, MetricKind.COUNTER, description="Bytes read from local files"),
    FamilySpec(TOTAL_READ_MEMORY_DATA, MetricKind.COUNTER, description="Bytes read from memory"),
    FamilySpec(TOTAL_LOCALFILE_WRITE_DATA, MetricKind.COUNTER, description="Bytes written locally"),
    FamilySpec(
        TOTAL_HADOOP_WRITE_DATA,
        MetricKind.COUNTER,
        REMOTE_LABELS,
        "Bytes written to remote storage",
    ),
    FamilySpec(STORAGE_TOTAL_WRITE_LOCAL, MetricKind.COUNTER),
    FamilySpec(STORAGE_SUCCESS_WRITE_LOCAL, MetricKind.COUNTER),
    FamilySpec(STORAGE_FAILED_WRITE_LOCAL, MetricKind.COUNTER),
    FamilySpec(STORAGE_RETRY_WRITE_LOCAL, MetricKind.COUNTER),
    FamilySpec(STORAGE_TOTAL_WRITE_REMOTE, MetricKind.COUNTER, REMOTE_LABELS),
    FamilySpec(STORAGE_SUCCESS_WRITE_REMOTE, MetricKind.COUNTER, REMOTE_LABELS),
    FamilySpec(STORAGE_FAILED_WRITE_REMOTE, MetricKind.COUNTER, REMOTE_LABELS),
    FamilySpec(STORAGE_RETRY_WRITE_REMOTE, MetricKind.COUNTER, REMOTE_LABELS),
    FamilySpec(BUFFERED_DATA_SIZE, MetricKind.GAUGE, description="Bytes held in write buffers"),
    FamilySpec(IN_FLUSH_BUFFER_SIZE, MetricKind.GAUGE, description="Bytes queued for flush"),
    FamilySpec(USED_BUFFER_SIZE, MetricKind.GAUGE, description="Bytes of buffer capacity in use"),
    FamilySpec(READ_USED_BUFFER_SIZE, MetricKind.GAUGE, description="Bytes held for reads"),
    FamilySpec(TOTAL_APP_NUM, MetricKind.GAUGE),
    FamilySpec(TOTAL_PARTITION_NUM, MetricKind.GAUGE),
    FamilySpec(EVENT_QUEUE_SIZE, MetricKind.GAUGE),
)

SOURCE_TYPES: dict[MetricScope, type[MetricSource]] = {
    MetricScope.RUNTIME: RuntimeMetricsSource,
    MetricScope.RPC: RpcMetricsSource,
    MetricScope.TRANSPORT: TransportMetricsSource,
}


class MetricsRegistry:
    """
    All metric families of one shuffle server.

    Thread-safe. Producers call counter()/gauge() (or the accounting
    helpers) concurrently; init() and clear() are serialized by the
    registry lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._server_tag: str | None = None
        self._families: dict[str, LabeledCounter | Gauge] = {}
        self._sources: dict[MetricScope, MetricSource] = {}

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def init(self, server_tag: str) -> None:
        """
        Build the metric catalog for a server.

        Calling init() again without clear() in between keeps the existing
        catalog.

        Args:
            server_tag: Encoded server tags, used as first label value
        """
        with self._lock:
            if self._server_tag is not None:
                logger.debug(f"Metrics registry already initialized for {self._server_tag}")
                return

            families: dict[str, LabeledCounter | Gauge] = {}
            for spec in SERVER_CATALOG:
                if spec.kind == MetricKind.COUNTER:
                    counter = LabeledCounter(spec.name, spec.label_names, spec.description)
                    if not spec.label_names:
                        # Scalar series are visible from the start
                        counter.inc((), 0)
                    families[spec.name] = counter
                else:
                    families[spec.name] = Gauge(spec.name, spec.description)

            self._families = families
            self._sources = {scope: cls(server_tag) for scope, cls in SOURCE_TYPES.items()}
            self._server_tag = server_tag

        logger.info(
            f"Metrics registry initialized (server_tag={server_tag}, "
            f"families={len(SERVER_CATALOG)})"
        )

    def clear(self) -> None:
        """Drop every family, series and source. Safe to call at any time."""
        with self._lock:
            for family in self._families.values():
                if isinstance(family, LabeledCounter):
                    family.clear()
            for source in self._sources.values():
                source.clear()
            self._families = {}
            self._sources = {}
            was_initialized = self._server_tag is not None
            self._server_tag = None

        if was_initialized:
            logger.info("Metrics registry cleared")

    @property
    def is_initialized(self) -> bool:
        return self._server_tag is not None

    @property
    def server_tag(self) -> str:
        tag = self._server_tag
        if tag is None:
            raise RegistryNotInitializedError()
        return tag

    # =========================================================================
    # Lookup
    # =========================================================================

    def _family(self, name: str) -> LabeledCounter | Gauge:
        families = self._families
        if self._server_tag is None:
            raise RegistryNotInitializedError()
        family = families.get(name)
        if family is None:
            raise MetricNotFoundError(name)
        return family

    def counter(self, name: str) -> LabeledCounter:
        """Server-scope counter family by name."""
        family = self._family(name)
        if not isinstance(family, LabeledCounter):
            raise MetricNotFoundError(name)
        return family

    def gauge(self, name: str) -> Gauge:
        """Server-scope gauge by name."""
        family = self._family(name)
        if not isinstance(family, Gauge):
            raise MetricNotFoundError(name)
        return family

    def source(self, scope: str | MetricScope) -> MetricSource:
        """Fixed-catalog source behind the runtime, rpc or transport scope."""
        resolved = MetricScope.parse(scope)
        if resolved == MetricScope.SERVER:
            raise MetricNotFoundError(f"{resolved.value} scope has no fixed source")
        if self._server_tag is None:
            raise RegistryNotInitializedError()
        return self._sources[resolved]

    def families(self) -> list[LabeledCounter | Gauge]:
        """Server-scope families in declaration order."""
        return list(self._families.values())

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self, scope: str | MetricScope) -> list[Sample]:
        """
        Ordered samples for one scope.

        Each family is copied under its own lock; the snapshot as a whole
        is not atomic across families.

        Raises:
            UnknownScopeError: If scope is not one of the four views
        """
        resolved = MetricScope.parse(scope)

        if resolved != MetricScope.SERVER:
            source = self._sources.get(resolved)
            return source.samples() if source is not None else []

        samples: list[Sample] = []
        for family in list(self._families.values()):
            if isinstance(family, LabeledCounter):
                for label_values, value in family.series():
                    samples.append(Sample(family.name, label_values, value, MetricKind.COUNTER))
            else:
                samples.append(Sample(family.name, (), family.get(), MetricKind.GAUGE))
        return samples
