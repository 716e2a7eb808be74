"""Structured logging for coordinate transforms.

Everything logs below the ``geoxform`` logger. Library code only emits records;
handlers are installed by :func:`setup_logging`, which the CLI calls. A JSON
lines file keeps the structured payload of each record, such as the projection
kind and failed point count of a batch.
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

PACKAGE_LOGGER = "geoxform"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the structured payload merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": time.time(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        payload = getattr(record, "transform_data", None)
        if payload:
            entry["data"] = payload
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(log_path: Path | None = None, level: int | str = logging.WARNING) -> logging.Logger:
    """Install handlers on the package logger, replacing earlier ones.

    Args:
        log_path: Optional JSON lines file, parent directories are created
        level: Level number or name such as ``"DEBUG"``

    Returns:
        The configured ``geoxform`` logger
    """
    level = _resolve_level(level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger.addHandler(console)

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        json_lines = logging.FileHandler(log_path)
        json_lines.setFormatter(JSONFormatter())
        package_logger.addHandler(json_lines)

    return package_logger


def get_logger(name: str) -> "StructuredLogger":
    """Structured logger for a module, usually ``get_logger(__name__)``."""
    return StructuredLogger(logging.getLogger(name))


class StructuredLogger:
    """Logger taking a message plus an optional dict of structured fields.

    The fields show up in the JSON lines file. The console only shows the
    message.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, msg: str, data: dict[str, Any] | None) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, msg, extra={"transform_data": data} if data else None)

    def debug(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.DEBUG, msg, data)

    def info(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.INFO, msg, data)

    def warning(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.WARNING, msg, data)

    def error(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.ERROR, msg, data)


__all__ = [
    "PACKAGE_LOGGER",
    "JSONFormatter",
    "setup_logging",
    "get_logger",
    "StructuredLogger",
]
