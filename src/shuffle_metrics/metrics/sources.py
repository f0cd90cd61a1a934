"""
Fixed-catalog metric sources for the runtime, rpc and transport scopes.

Each source declares its whole catalog when it is constructed, so the
number of exposed series never changes for a given source version. The
rpc and transport sources are fed by the serving layers through
record_call_started() / record_call_finished(); the runtime source samples
the Python process on every snapshot.

Every series carries the encoded server tag as its only label.
"""

from __future__ import annotations

import gc
import sys
import threading
import time
from typing import ClassVar

from .errors import MetricNotFoundError
from .gauge import LabeledGauge
from .labeled_counter import LabeledCounter
from .sample import MetricKind, Sample

TAGS_LABEL = "tags"

CatalogEntry = tuple[str, MetricKind]


class MetricSource:
    """
    Base class for a fixed-catalog source.

    Subclasses implement catalog(); refresh() is called before each
    snapshot for sources that sample their values lazily.
    """

    scope: ClassVar[str] = ""

    def __init__(self, server_tag: str) -> None:
        self.server_tag = server_tag
        self._families: dict[str, LabeledCounter | LabeledGauge] = {}
        self._declare()

    def catalog(self) -> list[CatalogEntry]:
        raise NotImplementedError

    def _declare(self) -> None:
        labels = (self.server_tag,)
        for name, kind in self.catalog():
            if kind == MetricKind.COUNTER:
                counter = LabeledCounter(name, (TAGS_LABEL,), aggregate_label=None)
                counter.inc(labels, 0)
                self._families[name] = counter
            else:
                gauge = LabeledGauge(name, (TAGS_LABEL,))
                gauge.declare(labels)
                self._families[name] = gauge

    def _family(self, name: str) -> LabeledCounter | LabeledGauge:
        family = self._families.get(name)
        if family is None:
            raise MetricNotFoundError(name)
        return family

    def get(self, name: str) -> float:
        """Current value of one catalog series."""
        return self._family(name).get((self.server_tag,))

    def inc(self, name: str, delta: float = 1.0) -> None:
        self._family(name).inc((self.server_tag,), delta)

    def set_gauge(self, name: str, value: float) -> None:
        family = self._family(name)
        if not isinstance(family, LabeledGauge):
            raise TypeError(f"{name} is a counter and cannot be set")
        family.set((self.server_tag,), value)

    def refresh(self) -> None:
        """Hook for sources that sample values at read time."""

    def _set_if_declared(self, name: str, value: float) -> None:
        family = self._families.get(name)
        if isinstance(family, LabeledGauge):
            family.set((self.server_tag,), value)

    def samples(self) -> list[Sample]:
        """All catalog series, in catalog order. Empty once the source is cleared."""
        self.refresh()
        result: list[Sample] = []
        for name, family in list(self._families.items()):
            kind = MetricKind.COUNTER if isinstance(family, LabeledCounter) else MetricKind.GAUGE
            for label_values, value in family.series():
                result.append(Sample(name, label_values, value, kind))
        return result

    def catalog_size(self) -> int:
        return len(self._families)

    def clear(self) -> None:
        for family in self._families.values():
            family.clear()
        self._families.clear()


class RuntimeMetricsSource(MetricSource):
    """Python process metrics: garbage collector, threads, uptime, allocations."""

    scope = "runtime"

    GC_GENERATIONS = (0, 1, 2)
    GC_STATS = ("collections", "collected", "uncollectable")

    def __init__(self, server_tag: str) -> None:
        self._started_mono = time.monotonic()
        super().__init__(server_tag)

    def catalog(self) -> list[CatalogEntry]:
        entries: list[CatalogEntry] = [
            (f"python_gc_gen{gen}_{stat}", MetricKind.GAUGE)
            for gen in self.GC_GENERATIONS
            for stat in self.GC_STATS
        ]
        entries.extend(
            [
                ("python_threads_active", MetricKind.GAUGE),
                ("python_allocated_blocks", MetricKind.GAUGE),
                ("process_uptime_seconds", MetricKind.GAUGE),
            ]
        )
        return entries

    def refresh(self) -> None:
        for gen, stats in zip(self.GC_GENERATIONS, gc.get_stats(), strict=False):
            for stat in self.GC_STATS:
                self._set_if_declared(f"python_gc_gen{gen}_{stat}", stats.get(stat, 0))
        self._set_if_declared("python_threads_active", threading.active_count())
        self._set_if_declared("python_allocated_blocks", sys.getallocatedblocks())
        self._set_if_declared("process_uptime_seconds", time.monotonic() - self._started_mono)


class CallMetricsSource(MetricSource):
    """
    Per-call accounting for a request-serving layer.

    The catalog is the server-wide series plus one block of series per
    declared call name. Subclasses fill in the class-level tables.
    """

    prefix: ClassVar[str] = ""
    server_series: ClassVar[tuple[CatalogEntry, ...]] = ()
    call_names: ClassVar[tuple[str, ...]] = ()
    per_call_series: ClassVar[tuple[CatalogEntry, ...]] = ()

    def catalog(self) -> list[CatalogEntry]:
        entries = list(self.server_series)
        for call in self.call_names:
            for suffix, kind in self.per_call_series:
                entries.append((f"{self.prefix}_{call}{suffix}", kind))
        return entries

    def _call_name(self, call: str, suffix: str = "") -> str:
        if call not in self.call_names:
            raise MetricNotFoundError(f"{self.prefix}_{call}{suffix}")
        return f"{self.prefix}_{call}{suffix}"

    def _inc_if_declared(self, name: str, delta: float = 1.0) -> None:
        if name in self._families:
            self.inc(name, delta)

    def _gauge_delta(self, name: str, delta: float) -> None:
        family = self._families.get(name)
        if isinstance(family, LabeledGauge):
            family.inc((self.server_tag,), delta)

    def record_call_started(self, call: str) -> None:
        """Account for a call entering the server."""
        self.inc(self._call_name(call, "_total"))
        self._gauge_delta(self._call_name(call), 1)
        self._inc_if_declared(f"{self.prefix}_total")
        self._gauge_delta(f"{self.prefix}_open", 1)

    def record_call_finished(
        self,
        call: str,
        transport_ms: float = 0.0,
        process_ms: float = 0.0,
        failed: bool = False,
    ) -> None:
        """
        Account for a call leaving the server.

        Args:
            call: Declared call name
            transport_ms: Time between the client sending and the server receiving
            process_ms: Server-side handling time
            failed: Whether the call ended in an error
        """
        self._gauge_delta(self._call_name(call), -1)
        self._gauge_delta(f"{self.prefix}_open", -1)
        self._inc_if_declared(self._call_name(call, "_transport_latency_sum"), transport_ms)
        self._inc_if_declared(self._call_name(call, "_transport_latency_count"))
        self._inc_if_declared(self._call_name(call, "_process_latency_sum"), process_ms)
        self._inc_if_declared(self._call_name(call, "_process_latency_count"))
        if failed:
            self._inc_if_declared(self._call_name(call, "_failed"))
            self._inc_if_declared(f"{self.prefix}_total_failed")

    def set_server_gauge(self, name: str, value: float) -> None:
        """Set one of the server-wide gauges (thread pool sizes, connections...)."""
        if name not in dict(self.server_series):
            raise MetricNotFoundError(name)
        self.set_gauge(name, value)


class RpcMetricsSource(CallMetricsSource):
    """gRPC service metrics."""

    scope = "rpc"
    prefix = "grpc"
    server_series = (
        ("grpc_open", MetricKind.GAUGE),
        ("grpc_total", MetricKind.COUNTER),
        ("grpc_server_executor_active_threads", MetricKind.GAUGE),
        ("grpc_server_executor_blocking_queue_size", MetricKind.GAUGE),
        ("grpc_server_executor_pool_size", MetricKind.GAUGE),
        ("grpc_server_connection_number", MetricKind.GAUGE),
    )
    call_names = (
        "register_shuffle",
        "unregister_shuffle",
        "send_shuffle_data",
        "commit_shuffle_task",
        "finish_shuffle",
        "require_buffer",
        "app_heartbeat",
        "report_shuffle_result",
        "get_shuffle_result",
        "get_shuffle_result_for_multi_part",
        "get_local_shuffle_index",
        "get_local_shuffle_data",
        "get_memory_shuffle_data",
    )
    per_call_series = (
        ("_total", MetricKind.COUNTER),
        ("", MetricKind.GAUGE),
        ("_transport_latency_sum", MetricKind.COUNTER),
        ("_transport_latency_count", MetricKind.COUNTER),
        ("_process_latency_sum", MetricKind.COUNTER),
        ("_process_latency_count", MetricKind.COUNTER),
    )


class TransportMetricsSource(CallMetricsSource):
    """Netty data-transport metrics."""

    scope = "transport"
    prefix = "netty"
    server_series = (
        ("netty_open", MetricKind.GAUGE),
        ("netty_total", MetricKind.COUNTER),
        ("netty_total_failed", MetricKind.COUNTER),
        ("netty_server_connection_number", MetricKind.GAUGE),
        ("netty_worker_active_threads", MetricKind.GAUGE),
        ("netty_worker_pool_size", MetricKind.GAUGE),
        ("netty_pending_tasks", MetricKind.GAUGE),
        ("netty_used_direct_memory", MetricKind.GAUGE),
    )
    call_names = (
        "send_shuffle_data",
        "get_local_shuffle_data",
        "get_local_shuffle_index",
        "get_memory_shuffle_data",
        "get_shuffle_result",
        "get_shuffle_result_for_multi_part",
        "report_shuffle_result",
        "require_buffer",
        "commit_shuffle_task",
        "finish_shuffle",
        "app_heartbeat",
        "unregister_shuffle",
    )
    per_call_series = (
        ("_total", MetricKind.COUNTER),
        ("", MetricKind.GAUGE),
        ("_transport_latency_sum", MetricKind.COUNTER),
        ("_process_latency_sum", MetricKind.COUNTER),
        ("_failed", MetricKind.COUNTER),
    )
