# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.logging_config",
#   "purpose": "Structured logging setup for extraction jobs",
#   "sections": [
#     {"id": "formatter", "name": "JSON Formatter", "anchor": "FMT", "kind": "class"},
#     {"id": "setup", "name": "Logging Setup", "anchor": "SET", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
"""
Structured Logging Utilities

Extraction code logs through the ``ZipExtract`` logger namespace and attaches
context with ``extra={"stage": ..., "entry": ...}``. This module installs the
handlers that render those records, either as terse console lines or as one
JSON object per line for log shippers.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional, Union

LOGGER_NAME = "ZipExtract"

_CONTEXT_FIELDS = ("stage", "entry", "archive", "error_code", "state")

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a logging record into a JSON line."""
        now = datetime.now(timezone.utc)
        log_obj = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_obj[key] = value
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_obj.update(record.extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def resolve_level(level: Union[str, int, None], verbosity: int = 0) -> int:
    """Map a level name or ``-v`` count to a :mod:`logging` level.

    An explicit ``level`` wins; otherwise ``-v`` means INFO and ``-vv`` DEBUG,
    with WARNING as the quiet default.
    """
    if isinstance(level, int):
        return level
    if level:
        return _LEVELS.get(level.upper(), logging.INFO)
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    level: Union[str, int, None] = None,
    *,
    verbosity: int = 0,
    json_logs: bool = False,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Configure the ``ZipExtract`` logger.

    Handlers installed by a previous call are replaced, so the function is
    safe to call once per CLI invocation (and repeatedly from tests).

    Args:
        level: Level name or number; overrides ``verbosity``.
        verbosity: ``-v`` count from the command line.
        json_logs: Emit JSON lines instead of ``LEVEL: message``.
        stream: Destination stream, ``sys.stderr`` by default.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(level, verbosity))

    for handler in list(logger.handlers):
        if getattr(handler, "_zipextract_managed", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handler._zipextract_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = True
    return logger


__all__ = ["JSONFormatter", "LOGGER_NAME", "resolve_level", "setup_logging"]
