# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for agentflow.

Engine components log named events (``run_started``, ``step_failed``,
``tool_retry``...) through :func:`log_event`. The JSON formatter lifts the
run correlation ids to the top of each line and nests everything else
under ``fields`` so a run can be followed with a single filter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict


# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName"
}

# Promoted to top-level keys, in this order
CORRELATION_FIELDS = ("event", "execution_id", "workflow_id", "node_id", "tool_id")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, correlation ids first."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        for key in CORRELATION_FIELDS:
            if key in extras:
                log_data[key] = extras.pop(key)
        if extras:
            log_data["fields"] = extras

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines; the execution id is appended when present."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        execution_id = getattr(record, "execution_id", None)
        if execution_id:
            line = f"{line} [{execution_id}]"
        return line


def get_logger(name: str, log_level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Get a logger writing to stdout in the given format.

    Calling it again for the same name replaces the handler, so a config
    reload never doubles output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if log_format == "json" else TextFormatter())
    logger.addHandler(handler)

    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    level: str = "INFO",
    **kwargs: Any
) -> None:
    """
    Log a named engine event.

    Args:
        logger: Logger instance
        event: Event name, also used as the message
        level: Log level name
        **kwargs: Structured fields (execution_id, node_id, attempt...)
    """
    log_func = getattr(logger, level.lower())
    log_func(event, extra={"event": event, **kwargs})


def _configured(name: str) -> logging.Logger:
    from agentflow.core.config import get_config
    config = get_config()
    return get_logger(name, log_level=config.log_level, log_format=config.log_format)


# Pre-configured loggers
def get_api_logger() -> logging.Logger:
    """Get logger for API routes."""
    return _configured("agentflow.api")


def get_service_logger(service_name: str) -> logging.Logger:
    """Get logger for the definition services."""
    return _configured(f"agentflow.service.{service_name}")


def get_engine_logger(component: str) -> logging.Logger:
    """Get logger for engine components (scheduler, steps, tools, store)."""
    return _configured(f"agentflow.engine.{component}")
