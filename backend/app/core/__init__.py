# backend/app/core/__init__.py
"""Core utilities for the endpoint security scanner."""

from .config import settings
from .exceptions import (
    AppException,
    ValidationError,
    ConfigurationError,
    ImportFormatError,
    NotFoundError,
    ScanInProgressError,
)
from .observability import configure_logging, logs
from .storage import (
    SESSION_KEYS,
    STORAGE_KEYS,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
)

__all__ = [
    "settings",
    "logs",
    "configure_logging",
    "AppException",
    "ValidationError",
    "ConfigurationError",
    "ImportFormatError",
    "NotFoundError",
    "ScanInProgressError",
    "SESSION_KEYS",
    "STORAGE_KEYS",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
]
