"""
HTTP runtime for the metrics server: configuration, logging, routes, app factory.
"""

from .app_factory import create_app
from .config import MetricsServerConfig, encode_tags, get_config, load_config
from .logging import setup_logging
from .metrics_routes import MetricSampleModel, MetricsResponse, create_metrics_routes

__all__ = [
    "create_app",
    "create_metrics_routes",
    "encode_tags",
    "get_config",
    "load_config",
    "MetricsServerConfig",
    "MetricSampleModel",
    "MetricsResponse",
    "setup_logging",
]
