"""
Unit tests for configuration loading and logging setup.
"""

import json
import logging
import sys

import pytest

from shuffle_metrics.runtime.config import (
    DEFAULT_PORT,
    MetricsServerConfig,
    encode_tags,
    get_config,
    load_config,
)
from shuffle_metrics.runtime.logging import LOG_FILE_NAME, JSONLFormatter, setup_logging

ENV_VARS = [
    "SHUFFLE_SERVER_TAGS",
    "SHUFFLE_METRICS_HOST",
    "SHUFFLE_METRICS_PORT",
    "SHUFFLE_REMOTE_STORAGE_PATHS",
    "SHUFFLE_METRICS_LOG_LEVEL",
    "SHUFFLE_METRICS_LOG_DIR",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield monkeypatch
    get_config.cache_clear()


class TestEncodeTags:
    def test_sorted_and_deduplicated(self):
        assert encode_tags(["ss_v5", "GRPC", "ss_v5"]) == "GRPC,ss_v5"

    def test_blank_entries_dropped(self):
        assert encode_tags([" GRPC ", "", "  "]) == "GRPC"


class TestLoadConfig:
    def test_defaults(self, clean_env):
        config = load_config()
        assert config.port == DEFAULT_PORT
        assert config.host == "127.0.0.1"
        assert config.remote_storage_paths == ()
        assert config.encoded_tags == "GRPC,ss_v5"

    def test_from_environment(self, clean_env):
        clean_env.setenv("SHUFFLE_SERVER_TAGS", "ss_v4, NETTY")
        clean_env.setenv("SHUFFLE_METRICS_PORT", "12345")
        clean_env.setenv("SHUFFLE_REMOTE_STORAGE_PATHS", "hdfs://hdfs1:9000/rss,hdfs2")
        clean_env.setenv("SHUFFLE_METRICS_LOG_LEVEL", "debug")

        config = load_config()
        assert config.server_tags == ("ss_v4", "NETTY")
        assert config.port == 12345
        assert config.remote_storage_paths == ("hdfs://hdfs1:9000/rss", "hdfs2")
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("port", ["abc", "0", "70000"])
    def test_invalid_port(self, clean_env, port):
        clean_env.setenv("SHUFFLE_METRICS_PORT", port)
        with pytest.raises(ValueError):
            load_config()

    def test_get_config_is_cached(self, clean_env):
        first = get_config()
        clean_env.setenv("SHUFFLE_METRICS_PORT", "12346")
        assert get_config() is first

    def test_frozen(self):
        config = MetricsServerConfig()
        with pytest.raises(AttributeError):
            config.port = 1  # type: ignore[misc]


class TestLogging:
    @pytest.fixture(autouse=True)
    def reset_logger(self):
        yield
        logger = logging.getLogger("shuffle_metrics")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_setup_writes_jsonl(self, tmp_path):
        logger = setup_logging(tmp_path, "INFO")
        child = logging.getLogger("shuffle_metrics.metrics.registry")
        child.info("registry ready", extra={"context": {"families": 3}})
        for handler in logger.handlers:
            handler.flush()

        lines = (tmp_path / LOG_FILE_NAME).read_text().strip().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "registry ready"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "shuffle_metrics.metrics.registry"
        assert entry["context"] == {"families": 3}

    def test_console_only(self):
        logger = setup_logging(None, logging.WARNING)
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_formatter_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "shuffle_metrics", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        entry = json.loads(JSONLFormatter().format(record))
        assert entry["exception"] == {"type": "ValueError", "message": "boom"}
        assert "source" in entry
