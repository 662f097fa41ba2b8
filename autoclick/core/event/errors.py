"""
Listener failure reporting for the autoclick EventBus.

Every listener failure, including a tier timeout, goes through
`handle_listener_error` so the log shape and the error counter stay uniform.
The helper never raises: one failing observer must not break the publish
that triggered it.
"""

from __future__ import annotations

from logging import Logger
from typing import Optional

from autoclick.core.event.metrics import EventMetricsRecorder
from autoclick.core.event.types import EventListener


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: EventListener,
    exc: BaseException,
    metrics: Optional[EventMetricsRecorder],
    tier: Optional[str] = None,
) -> None:
    if metrics is not None:
        metrics.record_error(event_name)

    logger.error(
        "EventBus listener error",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "priority": listener.priority.name,
            "tier": tier or listener.priority.name,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=(type(exc), exc, exc.__traceback__),
    )


__all__ = ["handle_listener_error"]
