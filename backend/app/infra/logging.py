"""Structured logging helpers shared across RunLog modules."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Mapping

__all__ = ["JsonLogFormatter", "configure_logging", "get_logger"]

ROOT_LOGGER_NAME = "runlog"
DEFAULT_LEVEL = "INFO"

_RESERVED_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    }
)


class JsonLogFormatter(logging.Formatter):
    """Render one JSON object per record, lifting `extra=` fields to the top level."""

    def __init__(self, *, environment: str | None = None) -> None:
        super().__init__()
        self._environment = environment

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        if self._environment:
            payload["env"] = self._environment
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the RunLog root logger."""

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    config: Mapping[str, Any] | None = None,
    *,
    environment: str | None = None,
) -> logging.Logger:
    """Install a single stdout handler on the RunLog root logger.

    ``config`` mirrors the ``logging`` section of a settings profile:
    ``level`` (default INFO) and ``json`` (default true).
    """

    config = config or {}
    level_name = str(config.get("level", DEFAULT_LEVEL)).upper()
    use_json = bool(config.get("json", True))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level_name)
    for handler in list(root.handlers):
        if getattr(handler, "_runlog_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonLogFormatter(environment=environment))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    handler._runlog_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.propagate = False
    return root
