"""
Event type definitions for the autoclick EventBus.

Purpose
-------
Shared vocabulary of the event system: the payload shape, the listener
priority tiers and the immutable listener record kept by the registry.

Priority Tiers
--------------
- CRITICAL (0): sequential, awaited, timeout-protected.
- HIGH (10): sequential, awaited, timeout-protected.
- NORMAL (50): concurrent via asyncio.gather, awaited.
- LOW (100): fire-and-forget background task.

Tutorial lifecycle observers (overlay UI, analytics) normally subscribe at
NORMAL; anything that must observe a transition before `publish()` returns
uses HIGH.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

# JSON-friendly dict; values should be primitives for clean structured logs
EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    """Execution tier of a listener. Lower value runs earlier."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    Registered listener.

    Attributes
    ----------
    callback:
        Sync or async callable receiving the payload.
    priority:
        Tier deciding ordering and concurrency.
    identifier:
        Key used for de-duplication and unsubscription.
    once:
        Removed from the registry before its first execution.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        """Build a listener, deriving `module.qualname@event` when no identifier is given."""
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(
                callback, "__qualname__", getattr(callback, "__name__", "callback")
            )
            identifier = f"{module}.{qualname}@{event_name}"

        return cls(
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
