"""Structured JSON logging with task_id correlation."""
from __future__ import annotations

import contextvars
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

# Context variable for the task being verified
task_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "task_id", default=""
)


class JSONFormatter(logging.Formatter):
    """Custom JSON log formatter."""

    def __init__(self, service_name: str = "unknown") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": self.service_name,
            "logger": record.name,
            "task_id": task_id_var.get(""),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
    logger_name: str | None = "src",
) -> logging.Logger:
    """Configure logging for the quality gate packages.

    Args:
        service_name: Name of the service for log entries.
        level: Log level string (e.g. "INFO", "DEBUG").
        json_output: Emit one JSON object per line instead of plain text.
        logger_name: Logger to configure; ``"src"`` covers every module.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logger.addHandler(handler)

    return logger


@contextmanager
def task_context(task_id: str | None) -> Iterator[None]:
    """Bind *task_id* to log records emitted inside the block."""
    token = task_id_var.set(task_id or "")
    try:
        yield
    finally:
        task_id_var.reset(token)
