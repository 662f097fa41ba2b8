"""
Base Service Foundation

Purpose
-------
Common base for autoclick domain services. Services own domain state,
enforce the rules of their module, and announce transitions on the EventBus.

Design Notes
------------
This base class provides:
- Structured operation / error logging
- Config access with a required-key check
- Event emission helpers

What this class does NOT do:
- Talk to storage directly (ports are injected into the concrete service)
- Own threads (blocking calls go through BackgroundDispatcher)

Usage
-----
    class TutorialService(BaseService):
        def __init__(self, ..., config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)

        async def start_tutorial(self, index: int) -> None:
            self.log_operation("start_tutorial", tutorial_index=index)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from autoclick.core.config.errors import ConfigError
from autoclick.modules.shared.exceptions import get_error_severity

if TYPE_CHECKING:
    from logging import Logger

    from autoclick.core.config.manager import ConfigManager
    from autoclick.core.event.bus import EventBus


class BaseService:
    """
    Base class for domain services.

    Args:
        config_manager: Application configuration manager
        event_bus: Event bus for lifecycle notifications
        logger: Logger for this service
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Read a configuration value.

        Raises:
            ConfigError: If required=True and the key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigError(f"Required configuration key '{key}' is missing")
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_skipped(self, operation: str, reason: str, **context: Any) -> None:
        """Log a guarded no-op: the call was accepted but had nothing to do."""
        self.log.info(
            f"Service operation skipped: {operation} ({reason})",
            extra={"operation": operation, "skip_reason": reason, **context},
        )

    def log_error(
        self,
        operation: str,
        error: BaseException,
        **context: Any,
    ) -> None:
        """Log a failed operation at the level matching the error's severity."""
        self.log.log(
            get_error_severity(error).log_level,
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
            exc_info=(type(error), error, error.__traceback__),
        )
