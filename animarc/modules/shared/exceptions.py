"""
Domain exceptions for the Animarc progression core.

Purpose
-------
Define the structured, domain-specific exception hierarchy for game logic.
These exceptions are raised by engines and services for rule violations,
missing state and lost optimistic-lock races. The presentation collaborator
translates them into user-facing messages.

Design Notes
------------
- All domain exceptions inherit from `AnimarcDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- The taxonomy callers branch on:
  - `InvalidStateError`: the operation is illegal in the current state
    (completed raid, no daily attempts left). Never silently clamped.
  - `NotFoundError`: a referenced row is missing. Never defaulted.
  - `ConcurrencyConflictError`: optimistic-lock failure. Retry with fresh state.
  - `ValidationError`: an argument is outside its documented domain.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from animarc.core.exceptions import (
    ErrorSeverity,
    get_error_severity,
    is_transient_error,
    should_alert,
)


class AnimarcDomainException(Exception):
    """
    Base exception for all Animarc domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
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
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class InvalidStateError(AnimarcDomainException):
    """
    Raised when an operation is not allowed in the current state.

    Args:
        action: Stable name of the rejected action (e.g., "raid.apply_damage")
        reason: Explanation of why it is not allowed

    Example:
        >>> raise InvalidStateError(
        ...     "raid.consume_attempt",
        ...     "No boss attempts remaining today"
        ... )
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(
        self,
        action: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid state for '{action}': {reason}",
            details={"action": action, "reason": reason, **(details or {})},
            error_code="INVALID_STATE",
        )


class NotFoundError(AnimarcDomainException):
    """
    Raised when a referenced boss, progress row or user-progress row is missing.

    Args:
        resource_type: Type of resource (e.g., "PortalRaidProgress", "UserProgress")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ConcurrencyConflictError(AnimarcDomainException):
    """
    Raised when a versioned update loses an optimistic-lock race.

    Retrying with freshly read state is always safe: damage and reward
    application are delta computations, never blind overwrites.

    Args:
        resource_type: Type of the contended row
        identifier: Row identifier
        expected_version: Version the caller read before writing
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        resource_type: str,
        identifier: Any,
        expected_version: Optional[int] = None,
    ) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        self.expected_version = expected_version
        super().__init__(
            f"Concurrent modification of {resource_type} {identifier}",
            details={
                "resource_type": resource_type,
                "identifier": identifier,
                "expected_version": expected_version,
            },
            error_code="CONCURRENCY_CONFLICT",
        )


class ValidationError(AnimarcDomainException):
    """
    Raised when an operation argument fails domain validation.

    Args:
        field: Name of the invalid argument
        message: What is wrong with it
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code="VALIDATION_ERROR",
        )


__all__ = [
    "AnimarcDomainException",
    "InvalidStateError",
    "NotFoundError",
    "ConcurrencyConflictError",
    "ValidationError",
    "ErrorSeverity",
    "is_transient_error",
    "get_error_severity",
    "should_alert",
]
