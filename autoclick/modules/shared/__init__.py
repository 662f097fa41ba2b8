"""Shared building blocks for autoclick domain modules."""

from autoclick.modules.shared.base_service import BaseService
from autoclick.modules.shared.exceptions import (
    AutoclickDomainException,
    ErrorSeverity,
    InvalidOperationError,
    ScenarioResolutionError,
    ValidationError,
    get_error_severity,
)

__all__ = [
    "BaseService",
    "AutoclickDomainException",
    "ErrorSeverity",
    "InvalidOperationError",
    "ScenarioResolutionError",
    "ValidationError",
    "get_error_severity",
]
