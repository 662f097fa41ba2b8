"""
EventBus metrics: a mutable recorder and its frozen snapshot.

The recorder lives on the event loop; `snapshot()` copies its counters into
an `EventMetrics` value that callers can keep without seeing later updates.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EventMetrics:
    """Point-in-time counters of the bus."""

    events_published: dict[str, int] = field(default_factory=dict)
    listener_errors: dict[str, int] = field(default_factory=dict)
    total_listeners: int = 0

    def get_summary(self) -> dict[str, Any]:
        total_events = sum(self.events_published.values())
        total_errors = sum(self.listener_errors.values())
        error_rate = (total_errors / max(1, total_events)) * 100.0

        return {
            "total_events_published": total_events,
            "events_by_type": dict(self.events_published),
            "total_errors": total_errors,
            "errors_by_event": dict(self.listener_errors),
            "total_listeners": self.total_listeners,
            "error_rate": round(error_rate, 2),
        }


class EventMetricsRecorder:
    """Counters updated by the bus and scheduler. Single event loop only."""

    def __init__(self) -> None:
        self._published: Counter[str] = Counter()
        self._errors: Counter[str] = Counter()
        self._total_listeners = 0

    def record_publish(self, event_name: str) -> None:
        self._published[event_name] += 1

    def record_error(self, event_name: str) -> None:
        self._errors[event_name] += 1

    @property
    def total_listeners(self) -> int:
        return self._total_listeners

    def adjust_listener_count(self, delta: int) -> None:
        """Shift the listener count, clamped at zero."""
        self._total_listeners = max(0, self._total_listeners + delta)

    def reset_listener_count(self) -> None:
        self._total_listeners = 0

    def snapshot(self) -> EventMetrics:
        return EventMetrics(
            events_published=dict(self._published),
            listener_errors=dict(self._errors),
            total_listeners=self._total_listeners,
        )
