# backend/app/core/observability.py
"""Structured logging helpers.

Every log call carries a ``source`` (the subsystem emitting it) and an
optional ``data`` mapping that is rendered as ``key=value`` pairs, so that
scan traces stay greppable::

    logs.info("Scan started", "controller", {"surface": "http", "items": 12})
"""

import logging
import sys
from typing import Any, Dict, Optional

from .config import settings

LOGGER_NAME = "scanner"

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s"


def _render(message: str, data: Optional[Dict[str, Any]]) -> str:
    if not data:
        return message
    pairs = " ".join(f"{key}={value}" for key, value in data.items())
    return f"{message} | {pairs}"


class Logs:
    """Thin facade over the stdlib logger hierarchy."""

    def __init__(self, name: str = LOGGER_NAME) -> None:
        self._name = name

    def _logger(self, source: str) -> logging.Logger:
        return logging.getLogger(f"{self._name}.{source}")

    def debug(
        self, message: str, source: str, data: Optional[Dict[str, Any]] = None
    ) -> None:
        self._logger(source).debug(_render(message, data))

    def info(
        self, message: str, source: str, data: Optional[Dict[str, Any]] = None
    ) -> None:
        self._logger(source).info(_render(message, data))

    def warning(
        self, message: str, source: str, data: Optional[Dict[str, Any]] = None
    ) -> None:
        self._logger(source).warning(_render(message, data))

    def error(
        self,
        message: str,
        source: str,
        data: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
    ) -> None:
        """Log an error, attaching the traceback when an exception is given."""
        self._logger(source).error(
            _render(message, data),
            exc_info=(type(exception), exception, exception.__traceback__)
            if exception is not None
            else None,
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stderr handler to the scanner logger namespace."""
    resolved = level or ("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(resolved.upper())
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)


logs = Logs()
