"""Logging configuration."""

import json
import logging
import os
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

current_task_id: ContextVar[str | None] = ContextVar("current_task_id", default=None)


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the application."""
    if config is None:
        config = LogConfig()

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,  # Override any existing configuration
    )

    # Set specific log levels for third-party libraries
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = level if level else os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(log_level.upper())

    return logger


class JSONLineFormatter(logging.Formatter):
    """Formats each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "task_id": getattr(record, "task_id", None),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TaskFilter(logging.Filter):
    """Passes only records emitted while ``task_id`` is the current task."""

    def __init__(self, task_id: str):
        super().__init__()
        self.task_id = task_id

    def filter(self, record: logging.LogRecord) -> bool:
        if current_task_id.get() != self.task_id:
            return False
        record.task_id = self.task_id
        return True


def sanitize_task_name(task: str, max_length: int = 50) -> str:
    """Turn a task description into a file-name friendly fragment."""
    safe = re.sub(r"[^A-Za-z0-9_-]", "_", task.strip())
    return safe[:max_length] or "task"


@contextmanager
def task_log_sink(task_id: str, task: str, log_dir: str | Path = "log") -> Iterator[Path]:
    """Write every log record of one task run to its own JSON-lines file.

    The sink is attached to the ``browser_agent`` logger for the duration of the
    block and only receives records produced while ``task_id`` is current, so
    concurrent runs stay separated.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}_{sanitize_task_name(task)}.log"

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(JSONLineFormatter())
    handler.addFilter(TaskFilter(task_id))

    package_logger = logging.getLogger("browser_agent")
    package_logger.addHandler(handler)
    token = current_task_id.set(task_id)
    try:
        yield path
    finally:
        current_task_id.reset(token)
        package_logger.removeHandler(handler)
        handler.close()
