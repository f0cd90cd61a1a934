"""
Metrics server configuration.

Read once from environment variables; see get_config().
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import cache

DEFAULT_SERVER_TAGS = ("ss_v5", "GRPC")
DEFAULT_PORT = 19998


def encode_tags(tags: tuple[str, ...] | list[str]) -> str:
    """Encode server tags into the single label value used by metrics."""
    return ",".join(sorted({t.strip() for t in tags if t.strip()}))


def _split(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class MetricsServerConfig:
    """Metrics server configuration.

    Attributes:
        server_tags: Tags of this shuffle server
        host: Bind address of the metrics HTTP server
        port: Port of the metrics HTTP server
        remote_storage_paths: Remote storage paths pre-registered at startup
        log_level: Logging level name
        log_dir: Directory for the JSONL log file
    """

    server_tags: tuple[str, ...] = DEFAULT_SERVER_TAGS
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    remote_storage_paths: tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"
    log_dir: str = ".shuffle_metrics/logs"

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid metrics port: {self.port}")

    @property
    def encoded_tags(self) -> str:
        return encode_tags(self.server_tags)


def load_config() -> MetricsServerConfig:
    """Load configuration from environment variables.

    Environment variables:
        - SHUFFLE_SERVER_TAGS → server_tags (comma separated)
        - SHUFFLE_METRICS_HOST → host
        - SHUFFLE_METRICS_PORT → port
        - SHUFFLE_REMOTE_STORAGE_PATHS → remote_storage_paths (comma separated)
        - SHUFFLE_METRICS_LOG_LEVEL → log_level
        - SHUFFLE_METRICS_LOG_DIR → log_dir

    Raises:
        ValueError: If the port is not a valid TCP port
    """
    port_value = os.environ.get("SHUFFLE_METRICS_PORT", str(DEFAULT_PORT))
    try:
        port = int(port_value)
    except ValueError:
        raise ValueError(f"Invalid metrics port: {port_value}") from None

    return MetricsServerConfig(
        server_tags=_split(os.environ.get("SHUFFLE_SERVER_TAGS")) or DEFAULT_SERVER_TAGS,
        host=os.environ.get("SHUFFLE_METRICS_HOST", "127.0.0.1"),
        port=port,
        remote_storage_paths=_split(os.environ.get("SHUFFLE_REMOTE_STORAGE_PATHS")),
        log_level=os.environ.get("SHUFFLE_METRICS_LOG_LEVEL", "INFO").upper(),
        log_dir=os.environ.get("SHUFFLE_METRICS_LOG_DIR", ".shuffle_metrics/logs"),
    )


@cache
def get_config() -> MetricsServerConfig:
    """Process-wide configuration, loaded on first use."""
    return load_config()
