"""
Storage write accounting.

Translates write-outcome and byte-count events from the flush path into
registry updates. Local storage uses unlabeled scalar counters; remote
storage uses counters labeled by (server tag, storage host), which roll up
into the ALL host series automatically.

Callers describe where a write went with a StorageLocation:

    accounting = StorageWriteAccounting(registry)
    accounting.inc_storage_success_counter(LOCAL)
    accounting.inc_storage_retry_counter(RemoteStorage("hdfs1"))

Plain host strings are also accepted and parsed once via
parse_storage_location(); the reserved LOCAL_STORAGE_HOST marker maps to
local storage.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import ReservedLabelError
from .labeled_counter import STORAGE_HOST_LABEL, STORAGE_HOST_LABEL_ALL
from .registry import (
    BUFFERED_DATA_SIZE,
    IN_FLUSH_BUFFER_SIZE,
    STORAGE_FAILED_WRITE_LOCAL,
    STORAGE_FAILED_WRITE_REMOTE,
    STORAGE_RETRY_WRITE_LOCAL,
    STORAGE_RETRY_WRITE_REMOTE,
    STORAGE_SUCCESS_WRITE_LOCAL,
    STORAGE_SUCCESS_WRITE_REMOTE,
    STORAGE_TOTAL_WRITE_LOCAL,
    STORAGE_TOTAL_WRITE_REMOTE,
    TOTAL_HADOOP_WRITE_DATA,
    TOTAL_LOCALFILE_WRITE_DATA,
    USED_BUFFER_SIZE,
    MetricsRegistry,
)

logger = logging.getLogger(__name__)

LOCAL_STORAGE_HOST = "local"


@dataclass(frozen=True)
class LocalStorage:
    """Node-local storage backend."""


@dataclass(frozen=True)
class RemoteStorage:
    """Remote storage backend identified by host. ALL is not a valid host."""

    host: str

    def __post_init__(self) -> None:
        if self.host == STORAGE_HOST_LABEL_ALL:
            raise ReservedLabelError("RemoteStorage", STORAGE_HOST_LABEL, self.host)


StorageLocation = LocalStorage | RemoteStorage

LOCAL = LocalStorage()


def parse_storage_location(host: str) -> StorageLocation:
    """Map a host string to a location; the local marker means local storage."""
    if host == LOCAL_STORAGE_HOST:
        return LOCAL
    return RemoteStorage(host)


def storage_host_from_path(path_or_host: str) -> str:
    """
    Extract the storage host from a remote storage path.

    "hdfs://hdfs1:9000/rss" -> "hdfs1"; a bare host is returned unchanged.
    Case is preserved so the host matches the one reported on writes.
    """
    value = path_or_host.strip()
    if "://" not in value:
        return value
    hostport = urlparse(value).netloc.rpartition("@")[2]
    if hostport.startswith("["):
        return hostport.partition("]")[0] + "]"
    return hostport.partition(":")[0]


# Outcome name -> (local outcome counter, remote outcome counter)
_OUTCOME_COUNTERS = {
    "retry": (STORAGE_RETRY_WRITE_LOCAL, STORAGE_RETRY_WRITE_REMOTE),
    "success": (STORAGE_SUCCESS_WRITE_LOCAL, STORAGE_SUCCESS_WRITE_REMOTE),
    "failed": (STORAGE_FAILED_WRITE_LOCAL, STORAGE_FAILED_WRITE_REMOTE),
}


class StorageWriteAccounting:
    """Write-outcome and write-size accounting on top of a registry."""

    def __init__(self, registry: MetricsRegistry) -> None:
        self._registry = registry

    @staticmethod
    def _location(location: StorageLocation | str) -> StorageLocation:
        if isinstance(location, str):
            return parse_storage_location(location)
        return location

    def _inc_outcome(self, outcome: str, location: StorageLocation | str) -> None:
        local_name, remote_name = _OUTCOME_COUNTERS[outcome]
        resolved = self._location(location)
        registry = self._registry

        if isinstance(resolved, LocalStorage):
            registry.counter(STORAGE_TOTAL_WRITE_LOCAL).inc()
            registry.counter(local_name).inc()
            return

        if not resolved.host:
            logger.debug(f"Ignoring storage {outcome} event with empty host")
            return

        labels = (registry.server_tag, resolved.host)
        registry.counter(STORAGE_TOTAL_WRITE_REMOTE).inc(labels)
        registry.counter(remote_name).inc(labels)

    def inc_storage_retry_counter(self, location: StorageLocation | str) -> None:
        """Record a write attempt that will be retried."""
        self._inc_outcome("retry", location)

    def inc_storage_success_counter(self, location: StorageLocation | str) -> None:
        """Record a successful write."""
        self._inc_outcome("success", location)

    def inc_storage_failed_counter(self, location: StorageLocation | str) -> None:
        """Record a write that failed for good."""
        self._inc_outcome("failed", location)

    def inc_hadoop_storage_write_data_size(self, host: str, size: float) -> None:
        """
        Add written bytes for a remote storage host.

        The ALL series of the family is updated in the same call.

        Args:
            host: Remote storage host
            size: Bytes written, non-negative
        """
        if not host:
            logger.debug("Ignoring remote write size with empty host")
            return
        registry = self._registry
        registry.counter(TOTAL_HADOOP_WRITE_DATA).inc((registry.server_tag, host), size)

    def inc_storage_write_data_size(self, location: StorageLocation | str, size: float) -> None:
        """Add written bytes for either kind of storage."""
        resolved = self._location(location)
        if isinstance(resolved, LocalStorage):
            self._registry.counter(TOTAL_LOCALFILE_WRITE_DATA).inc((), size)
        else:
            self.inc_hadoop_storage_write_data_size(resolved.host, size)

    def register_remote_storage(self, path_or_host: str) -> str | None:
        """
        Pre-register a remote storage host.

        Creates zero-valued outcome and write-size series for the host so it
        shows up in the server scope before the first write.

        Args:
            path_or_host: Remote storage path (e.g. hdfs://hdfs1:9000/rss) or host

        Returns:
            The registered host, or None if no host could be extracted

        Raises:
            ReservedLabelError: If the host is ALL
        """
        host = storage_host_from_path(path_or_host)
        if not host:
            logger.warning(f"Cannot register remote storage without a host: {path_or_host!r}")
            return None
        if host == STORAGE_HOST_LABEL_ALL:
            raise ReservedLabelError("register_remote_storage", STORAGE_HOST_LABEL, host)

        registry = self._registry
        labels = (registry.server_tag, host)
        for name in (
            STORAGE_TOTAL_WRITE_REMOTE,
            STORAGE_SUCCESS_WRITE_REMOTE,
            STORAGE_FAILED_WRITE_REMOTE,
            STORAGE_RETRY_WRITE_REMOTE,
            TOTAL_HADOOP_WRITE_DATA,
        ):
            registry.counter(name).inc(labels, 0)

        logger.info(f"Registered remote storage host {host}")
        return host


class BufferAccounting:
    """
    Gauge deltas for data moving through the write buffer.

    buffered_data_size tracks data waiting in memory, in_flush_buffer_size
    data handed to the flush queue, used_buffer_size the buffer capacity
    held by both.
    """

    def __init__(self, registry: MetricsRegistry) -> None:
        self._registry = registry

    def on_buffer_added(self, size: float) -> None:
        self._registry.gauge(BUFFERED_DATA_SIZE).inc(size)
        self._registry.gauge(USED_BUFFER_SIZE).inc(size)

    def on_flush_started(self, size: float) -> None:
        self._registry.gauge(BUFFERED_DATA_SIZE).dec(size)
        self._registry.gauge(IN_FLUSH_BUFFER_SIZE).inc(size)

    def on_flush_finished(self, size: float) -> None:
        self._registry.gauge(IN_FLUSH_BUFFER_SIZE).dec(size)
        self._registry.gauge(USED_BUFFER_SIZE).dec(size)

    @contextmanager
    def flushing(self, size: float) -> Generator[None, None, None]:
        """Hold size bytes as in-flush for the duration of the block."""
        self.on_flush_started(size)
        try:
            yield
        finally:
            self.on_flush_finished(size)
