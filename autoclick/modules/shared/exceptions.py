"""
Domain exceptions for autoclick.

Purpose
-------
Structured exception hierarchy raised by tutorial domain components (catalog,
session engine, mini-game) and caught at the coordinator boundary, which
turns them into logged no-ops.

Design Notes
------------
- Every domain exception inherits from `AutoclickDomainException` and carries:
  - `message`: human-readable description
  - `details`: structured context for logs
  - `severity`: `ErrorSeverity` deciding the log level at the boundary
  - `is_retryable`: whether repeating the call can succeed
  - `error_code`: short stable identifier
- `get_error_severity()` maps any exception to a severity so callers can log
  foreign exceptions (store or engine failures) on the same scale.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging."""

    DEBUG = "debug"  # Expected, e.g. a hit on a finished game
    INFO = "info"  # Rejected input
    WARNING = "warning"  # Handled, but worth a look
    ERROR = "error"  # Unexpected
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return getattr(logging, self.name)


class AutoclickDomainException(Exception):
    """
    Base exception for autoclick domain errors.

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
            f"severity={self.severity.value!r}"
            ")"
        )


class ValidationError(AutoclickDomainException):
    """
    Raised when input or definition data fails validation.

    Args:
        field: Name of the offending field
        message: Why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidOperationError(AutoclickDomainException):
    """
    Raised when an operation is not allowed in the current state.

    Example:
        >>> raise InvalidOperationError("start_game", "no tutorial running")
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


class ScenarioResolutionError(AutoclickDomainException):
    """
    Raised when no backing scenario can be obtained for a tutorial.

    Args:
        tutorial_index: Tutorial whose scenario could not be resolved
        reason: What went wrong
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(self, tutorial_index: int, reason: str) -> None:
        self.tutorial_index = tutorial_index
        self.reason = reason
        super().__init__(
            f"Cannot resolve scenario for tutorial {tutorial_index}: {reason}",
            details={"tutorial_index": tutorial_index, "reason": reason},
            error_code="SCENARIO_RESOLUTION_FAILED",
        )


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    """Severity of `exc`; foreign exceptions count as ERROR."""
    if isinstance(exc, AutoclickDomainException):
        return exc.severity
    return ErrorSeverity.ERROR
