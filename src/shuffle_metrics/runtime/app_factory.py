"""
FastAPI application factory for the metrics server.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from shuffle_metrics._version import get_version
from shuffle_metrics.metrics import MetricsRegistry, StorageWriteAccounting
from shuffle_metrics.runtime.config import MetricsServerConfig, get_config
from shuffle_metrics.runtime.metrics_routes import create_metrics_routes

logger = logging.getLogger(__name__)


def create_app(
    config: MetricsServerConfig | None = None,
    registry: MetricsRegistry | None = None,
) -> FastAPI:
    """
    Build the metrics HTTP application.

    Initializes the registry with the configured server tags and
    pre-registers the configured remote storage hosts, so their series are
    exposed with zero values before the first write.

    Args:
        config: Server configuration (uses get_config() if None)
        registry: Registry to serve (a new one is created if None)

    Returns:
        FastAPI application; the registry is available as app.state.registry
    """
    config = config or get_config()
    registry = registry or MetricsRegistry()
    registry.init(config.encoded_tags)

    accounting = StorageWriteAccounting(registry)
    for path in config.remote_storage_paths:
        accounting.register_remote_storage(path)

    app = FastAPI(
        title="Shuffle Server Metrics",
        description="Metrics exposition for a shuffle server",
        version=get_version(),
    )
    app.state.registry = registry
    app.state.config = config
    app.include_router(create_metrics_routes(registry))

    logger.info(
        f"Metrics app created (server_tag={registry.server_tag}, "
        f"remote_storage={len(config.remote_storage_paths)})"
    )
    return app
