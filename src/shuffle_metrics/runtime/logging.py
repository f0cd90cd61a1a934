"""
Logging setup for the metrics server.

- Console output: short human-readable lines
- File output: JSON Lines in <log_dir>/shuffle_metrics.log, one object per record

All package loggers live under the "shuffle_metrics" namespace, so a single
call to setup_logging() configures them.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

ROOT_LOGGER = "shuffle_metrics"
LOG_FILE_NAME = "shuffle_metrics.log"

_NO_COLOR = bool(os.environ.get("NO_COLOR")) or not sys.stdout.isatty()

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


class JSONLFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line.

    Fields: timestamp, level, logger, message, plus ``context`` when the
    record carries one (``extra={"context": {...}}``), source location for
    warnings and above, and exception type/message when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Brief console lines: time, logger, level (if not INFO), message."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        prefix = f"[{timestamp}] [{record.name}]"

        if record.levelno != logging.INFO:
            level_name = record.levelname
            color = _LEVEL_COLORS.get(record.levelno)
            if color and not _NO_COLOR:
                level_name = f"{color}{level_name}{_RESET}"
            prefix = f"{prefix} {level_name}:"

        message = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(
    log_dir: Path | str | None = ".shuffle_metrics/logs",
    level: int | str = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_dir: Directory for the JSONL file; None disables file output
        level: Minimum log level (number or name)
        max_bytes: Max size per log file before rotation
        backup_count: Number of rotated files to keep

    Returns:
        The configured "shuffle_metrics" logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONLFormatter())
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

        root_logger.debug(
            "Logging initialized",
            extra={"context": {"log_file": str(path / LOG_FILE_NAME), "log_format": "jsonl"}},
        )

    return root_logger
