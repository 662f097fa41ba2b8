"""
Configuration error hierarchy for autoclick.

Purpose
-------
Provides domain-specific exceptions for configuration management operations
with clear error classification and helpful error messages.

Responsibilities
----------------
- Define exception hierarchy for configuration errors
- Provide clear error messages for different failure scenarios
- Enable precise error handling and recovery strategies

Non-Responsibilities
--------------------
- Error logging (handled by logger)
- Error recovery logic (handled by ConfigManager)

Exception Hierarchy
-------------------
ConfigError (base)
├── ConfigValidationError (schema/type validation failures)
└── ConfigInitializationError (startup/init failures)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    All configuration exceptions inherit from this class to enable
    catching all config-related errors with a single except clause.

    Example
    -------
    >>> try:
    ...     config_manager.set("tutorial.scenario.detection_quality", "high")
    ... except ConfigError as e:
    ...     logger.error(f"Config operation failed: {e}")
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Raised when configuration validation fails.

    This exception is raised when:
    - A registered validator rejects a value
    - A tutorial catalog entry has the wrong structure
    - Type coercion fails

    Example
    -------
    >>> try:
    ...     config_manager.set("tutorial.game.tick_seconds", -1)
    ... except ConfigValidationError as e:
    ...     logger.error(f"Validation failed: {e}")
    """
    pass


class ConfigInitializationError(ConfigError):
    """
    Raised when ConfigManager initialization fails.

    This exception is raised when:
    - The configured YAML directory cannot be read
    - A YAML file cannot be parsed and strict loading is requested

    This is a critical error that typically requires intervention
    before the application can continue.
    """
    pass


__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "ConfigInitializationError",
]
