# backend/app/core/exceptions.py
"""Custom exception hierarchy for the endpoint security scanner."""

from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code=400, details=details)


class ConfigurationError(ValidationError):
    """Raised when a scan cannot start with the given configuration.

    Covers an empty worklist and missing project or target host. Always
    raised before the controller changes state.
    """


class ImportFormatError(ValidationError):
    """Raised when an import payload cannot be read."""


class NotFoundError(AppException):
    """Raised when a referenced record does not exist."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code=404, details=details)


class ScanInProgressError(AppException):
    """Raised when a scan surface already has an active run."""

    def __init__(
        self,
        message: str = "A scan is already running",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code=409, details=details)
