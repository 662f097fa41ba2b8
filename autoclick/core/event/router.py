"""
EventRouter: wildcard matching of event names.

Supported Patterns
------------------
- Exact:    "tutorial.started" matches only itself
- Global:   "*" matches any event
- Prefix:   "tutorial.*" matches "tutorial.started", "tutorial.mode_stopped"
- Suffix:   "*.stopped" matches "tutorial.stopped", "game.stopped"
- Sandwich: "tutorial.*.recorded" matches "tutorial.success.recorded"

Matching is case-sensitive. Runs of '*' collapse to a single wildcard.
"""

from __future__ import annotations


class EventRouter:
    """Stateless wildcard matcher."""

    def matches(self, event_name: str, pattern: str) -> bool:
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        parts = pattern.split("*")
        head, tail = parts[0], parts[-1]

        if head and not event_name.startswith(head):
            return False
        if tail and not event_name.endswith(tail):
            return False
        # Prefix and suffix must not overlap on short names
        if len(head) + len(tail) > len(event_name):
            return False

        cursor = len(head)
        limit = len(event_name) - len(tail)
        for middle in parts[1:-1]:
            if not middle:
                continue
            found = event_name.find(middle, cursor, limit)
            if found == -1:
                return False
            cursor = found + len(middle)

        return True
