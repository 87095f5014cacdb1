"""Logging setup for applications and the command line.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are installed here, on request.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO


LOGGER_NAME = "textdomain"


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable single-line format."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s", "%H:%M:%S")


def configure_logging(
    level: int | str = logging.WARNING,
    json_output: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install a single stream handler on the ``textdomain`` logger.

    Calling it again replaces the handler instead of adding another.

    Args:
        level: Log level name or number
        json_output: Emit JSON lines instead of console text
        stream: Output stream (default: stderr)

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_textdomain_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())
    handler._textdomain_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
