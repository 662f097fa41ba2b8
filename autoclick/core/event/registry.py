"""
ListenerRegistry: storage and lookup for EventBus listeners.

Purpose
-------
Keeps exact-name listeners in a dict and wildcard listeners in a sorted
list, and hands the bus the ordered set of listeners for one publish.

Design Decisions
----------------
- Synchronous API: every mutation happens on the event loop thread, so the
  dict and list are consistent between awaits without locking.
- Listeners are ordered by (priority value, identifier) so dispatch order is
  deterministic across runs.
- One-shot listeners are pruned in the same call that returns them; two
  overlapping publishes can never both deliver a `once=True` listener.
"""

from __future__ import annotations

from autoclick.core.event.router import EventRouter
from autoclick.core.event.types import EventListener


def _order_key(listener: EventListener) -> tuple[int, str]:
    return (listener.priority.value, listener.identifier)


class ListenerRegistry:
    """Exact and wildcard listener storage. Not thread-safe."""

    def __init__(self, router: EventRouter | None = None) -> None:
        self._router = router or EventRouter()
        self._listeners: dict[str, list[EventListener]] = {}
        self._wildcard_listeners: list[tuple[str, EventListener]] = []

    # ------------------------------------------------------------------ #
    # Modification
    # ------------------------------------------------------------------ #

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        *,
        allow_duplicates: bool,
    ) -> bool:
        """Register `listener`; returns False when rejected as a duplicate."""
        if "*" in event_name:
            if not allow_duplicates and any(
                pattern == event_name and existing.identifier == listener.identifier
                for pattern, existing in self._wildcard_listeners
            ):
                return False
            self._wildcard_listeners.append((event_name, listener))
            self._wildcard_listeners.sort(key=lambda entry: _order_key(entry[1]))
            return True

        bucket = self._listeners.setdefault(event_name, [])
        if not allow_duplicates and any(
            existing.identifier == listener.identifier for existing in bucket
        ):
            return False

        bucket.append(listener)
        bucket.sort(key=_order_key)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        removed = False

        bucket = self._listeners.get(event_name)
        if bucket is not None:
            kept = [lst for lst in bucket if lst.identifier != identifier]
            removed = len(kept) < len(bucket)
            if kept:
                self._listeners[event_name] = kept
            else:
                del self._listeners[event_name]

        before = len(self._wildcard_listeners)
        self._wildcard_listeners = [
            (pattern, lst)
            for pattern, lst in self._wildcard_listeners
            if not (pattern == event_name and lst.identifier == identifier)
        ]
        return removed or len(self._wildcard_listeners) < before

    def clear_all(self) -> int:
        """Drop every listener; returns how many there were."""
        total = self.get_total_listener_count()
        self._listeners.clear()
        self._wildcard_listeners.clear()
        return total

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def extract_listeners_for_event(self, event_name: str) -> list[EventListener]:
        """
        Collect exact and wildcard listeners for `event_name`.

        One-shot listeners are removed from the registry as part of this call.
        """
        result: list[EventListener] = []

        exact = self._listeners.get(event_name, [])
        result.extend(exact)
        persistent = [lst for lst in exact if not lst.once]
        if persistent:
            self._listeners[event_name] = persistent
        else:
            self._listeners.pop(event_name, None)

        remaining: list[tuple[str, EventListener]] = []
        for pattern, listener in self._wildcard_listeners:
            if self._router.matches(event_name, pattern):
                result.append(listener)
                if listener.once:
                    continue
            remaining.append((pattern, listener))
        self._wildcard_listeners = remaining

        result.sort(key=_order_key)
        return result

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count_for_event(self, event_name: str) -> int:
        count = len(self._listeners.get(event_name, []))
        count += sum(
            1
            for pattern, _ in self._wildcard_listeners
            if self._router.matches(event_name, pattern)
        )
        return count

    def get_total_listener_count(self) -> int:
        exact = sum(len(bucket) for bucket in self._listeners.values())
        return exact + len(self._wildcard_listeners)

    def get_all_event_keys(self) -> list[str]:
        keys = set(self._listeners)
        keys.update(pattern for pattern, _ in self._wildcard_listeners)
        return sorted(keys)
