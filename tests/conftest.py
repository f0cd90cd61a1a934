"""Shared pytest fixtures for shuffle-metrics tests."""

import pytest

from shuffle_metrics.metrics import (
    BufferAccounting,
    MetricsRegistry,
    StorageWriteAccounting,
)

SERVER_TAG = "GRPC,ss_v5"
STORAGE_HOST = "hdfs1"
REMOTE_STORAGE_PATH = "hdfs://hdfs1:9000/rss"


@pytest.fixture
def registry():
    """Initialized registry, cleared after the test."""
    reg = MetricsRegistry()
    reg.init(SERVER_TAG)
    yield reg
    reg.clear()


@pytest.fixture
def accounting(registry: MetricsRegistry) -> StorageWriteAccounting:
    return StorageWriteAccounting(registry)


@pytest.fixture
def buffers(registry: MetricsRegistry) -> BufferAccounting:
    return BufferAccounting(registry)
