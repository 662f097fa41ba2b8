"""
Event system for autoclick.

Provides the instance-based EventBus used to broadcast tutorial lifecycle
transitions. The application bus is owned by `ServiceContainer`.
"""

from .bus import EventBus
from .context import apply_event_log_context
from .metrics import EventMetrics
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventMetrics",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
    "apply_event_log_context",
]
