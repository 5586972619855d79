from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from core.config import LoggingConfig

# Set through ``extra=`` on fetch, queue and refresh log calls.
CONTEXT_FIELDS = ("gr_no", "generation", "page", "silent", "in_flight")

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with any context fields the record carries."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level(name: str, default: int = logging.INFO) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def _console_handler(config: LoggingConfig) -> logging.Handler:
    handler = logging.StreamHandler()
    if config.json_console:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _file_handler(config: LoggingConfig) -> logging.Handler:
    target = Path(config.directory)
    target.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        target / config.file_name,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    return handler


def configure_logging(config: LoggingConfig) -> None:
    """Route everything through the root logger: readable console, JSON lines on disk."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(_level(config.level))
    root.addHandler(_console_handler(config))
    root.addHandler(_file_handler(config))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, level in config.levels.items():
        logging.getLogger(name).setLevel(_level(level))
