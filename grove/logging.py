"""Grove logging.

Log records may carry a ``task_id`` and a ``project``; both formatters render
them. The console handler is only installed for ``--verbose`` runs, the JSON
file under the Grove home collects info and above from every run.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILE = "grove.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_CONTEXT_FIELDS = ("task_id", "project")


def _context(record: logging.LogRecord) -> dict[str, str]:
    return {key: str(getattr(record, key)) for key in _CONTEXT_FIELDS if hasattr(record, key)}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, then task context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ConsoleFormatter(logging.Formatter):
    """``12:00:01 WARNING  [T-1:api] message``, level colored on terminals."""

    LEVEL_COLORS = {"DEBUG": "36", "INFO": "32", "WARNING": "33", "ERROR": "31", "CRITICAL": "35"}

    def __init__(self, color: bool = False) -> None:
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8s}"
        if self.color and record.levelname in self.LEVEL_COLORS:
            level = f"\033[{self.LEVEL_COLORS[record.levelname]}m{level}\033[0m"
        context = _context(record)
        prefix = f"[{':'.join(context.values())}] " if context else ""

        line = f"{datetime.now().strftime('%H:%M:%S')} {level} {prefix}{record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"grove.{name}")


def setup_logging(
    level: str = "warning",
    log_dir: str | Path | None = None,
    json_output: bool = True,
    console_output: bool = True,
) -> None:
    """Install Grove's handlers on the ``grove`` logger, replacing earlier ones.

    Args:
        level: Console threshold (debug, info, warning, error)
        log_dir: Directory for the rotating JSON log; None disables it
        json_output: Whether to write the JSON log at all
        console_output: Whether to log to stderr
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    file_logging = log_dir is not None and json_output

    grove_logger = logging.getLogger("grove")
    grove_logger.handlers = []
    grove_logger.setLevel(min(log_level, logging.INFO) if file_logging else log_level)
    grove_logger.propagate = False

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(ConsoleFormatter(color=sys.stderr.isatty()))
        grove_logger.addHandler(console_handler)

    if file_logging:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / LOG_FILE, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
        )
        file_handler.setLevel(min(log_level, logging.INFO))
        file_handler.setFormatter(JsonFormatter())
        grove_logger.addHandler(file_handler)


class TaskLogAdapter(logging.LoggerAdapter[logging.Logger]):
    """Adds the bound task (and project) to every record."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def get_task_logger(task_id: str, project: str | None = None) -> TaskLogAdapter:
    extra: dict[str, Any] = {"task_id": task_id}
    if project is not None:
        extra["project"] = project
    return TaskLogAdapter(get_logger("task"), extra)
