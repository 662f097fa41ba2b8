"""
Event log context helper.

Stamps the event name and payload keys onto the current LogContext so every
record emitted while a publish is dispatched can be traced to it. Only keys
are recorded, never values.
"""

from __future__ import annotations

from typing import Any

from autoclick.core.logging.logger import get_logger, set_log_context

logger = get_logger(__name__)


def apply_event_log_context(event_name: str, payload: dict[str, Any]) -> None:
    try:
        set_log_context(
            event_name=event_name,
            event_keys=sorted(payload.keys()),
        )
    except (TypeError, AttributeError) as exc:
        # Best effort; a malformed payload must not abort dispatch
        logger.debug(
            "Failed to apply event log context",
            extra={
                "event_name": event_name,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
