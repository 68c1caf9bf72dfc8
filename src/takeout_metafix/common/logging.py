"""Logging setup for takeout-metafix runs.

Every module logs through ``logging.getLogger(__name__)``. Messages carry
a dict-literal payload (``Restored: {'sidecar': ..., 'outcome': ...}``) so
one line per work item stays greppable. Lines emitted by the execution
workers are tagged with the worker's thread name.
"""

import json
import logging
import logging.handlers
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .logging_config import LoggingConfig


def _worker_name(record: logging.LogRecord) -> Optional[str]:
    """Thread name for records emitted off the main thread, else None."""
    if record.threadName == threading.main_thread().name:
        return None
    return record.threadName


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, used for log files.

    ``worker`` is set for lines emitted by an execution worker thread and
    is null for the sequential phases (discovery, resolution, reporting).
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "worker": _worker_name(record),
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, ensure_ascii=False)


class DetailedFormatter(logging.Formatter):
    """Human-readable detailed formatter."""

    def __init__(self) -> None:
        fmt = (
            "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s:%(funcName)s:%(lineno)d | "
            "%(message)s"
        )
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")


class SimpleFormatter(logging.Formatter):
    """Console formatter; worker lines are prefixed with ``[metafix-worker-N]``."""

    def __init__(self) -> None:
        super().__init__(fmt="%(levelname)-8s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        worker = _worker_name(record)
        return f"[{worker}] {line}" if worker else line


FORMATTERS = {
    "simple": SimpleFormatter,
    "detailed": DetailedFormatter,
    "json": StructuredFormatter,
}


def setup_logging(
    level: str = "INFO",
    format: str = "simple",
    log_file: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the root logger for one run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Console format (simple, detailed, json)
        log_file: Optional log file; always written as JSON lines
        max_file_size_mb: Rotate the log file at this size
        backup_count: Number of rotated files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(FORMATTERS.get(format, SimpleFormatter)())
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)


def configure_logging(config: LoggingConfig) -> None:
    """Apply the ``[logging]`` section of the run configuration."""
    setup_logging(
        level=config.level,
        format=config.format,
        log_file=Path(config.file) if config.file else None,
    )
