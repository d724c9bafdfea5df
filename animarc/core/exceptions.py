"""
Infrastructure exceptions: configuration and database failures.

These are engineering problems, not gameplay outcomes, so they carry a
severity for alerting and a retry hint for callers. Domain errors live in
``animarc.modules.shared.exceptions`` and share the same fields, so the
helpers at the bottom of this module work on both hierarchies.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AnimarcInfrastructureException(Exception):
    """
    Base for infrastructure errors.

    Subclasses set ``DEFAULT_SEVERITY`` / ``DEFAULT_RETRYABLE``; a caller can
    still override either per instance.
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details: Dict[str, Any] = details or {}
        self.severity = severity or self.DEFAULT_SEVERITY
        self.is_retryable = self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        self.error_code = error_code or type(self).__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.error_code}] {self.message} | Details: {self.details}"
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(AnimarcInfrastructureException):
    """A balance key or environment setting is unusable."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for '{config_key}': {message}",
            details={"config_key": config_key},
            error_code="CONFIGURATION_ERROR",
        )


class DatabaseError(AnimarcInfrastructureException):
    """
    The database could not complete ``operation``.

    Raised by DatabaseService for operational driver failures (lost
    connection, lock timeout, missing table); the driver exception is kept
    as ``original_error`` and chained as ``__cause__``.
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database operation '{operation}' failed: {original_error}",
            details={
                "operation": operation,
                "original_error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class DatabaseNotInitializedError(AnimarcInfrastructureException):
    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self) -> None:
        super().__init__(
            "DatabaseService has not been initialized",
            error_code="DATABASE_NOT_INITIALIZED",
        )


def is_transient_error(exc: Exception) -> bool:
    return bool(getattr(exc, "is_retryable", False))


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Severity of ``exc``; exceptions outside both hierarchies count as ERROR."""
    severity = getattr(exc, "severity", None)
    return severity if isinstance(severity, ErrorSeverity) else ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
