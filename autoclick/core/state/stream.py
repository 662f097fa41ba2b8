"""
State streams: observable, multicast values for the UI layer.

Purpose
-------
A `StateStream` holds one current value and tells its observers whenever that
value changes. The tutorial coordinator exposes its derived state (tutorial
list, active tutorial, active step, active game) as streams so any number of
observers can follow it without triggering side effects.

Semantics
---------
- Observers receive the current value on subscription, then every distinct
  subsequent value (equality-based de-duplication).
- Observer callbacks run synchronously, in subscription order, on the thread
  that wrote the value. Writes are expected on the event loop thread.
- A failing observer is logged and skipped; it never blocks the writer or the
  remaining observers.
- `map()` and `combine()` build derived streams whose value is a pure function
  of their inputs, recomputed on every upstream change.
- `watch()` adapts a stream to `async for` consumption through an
  `asyncio.Queue`.

Design Decisions
----------------
- Identifier-based subscriptions mirror the EventBus listener registry:
  `subscribe()` returns an id that `unsubscribe()` accepts.
- Derived streams hold a subscription on their source for their lifetime.
  They are built once per owner (the coordinator), never per observer.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Generic,
    Optional,
    Sequence,
    TypeVar,
)

from autoclick.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

StateObserver = Callable[[Any], Any]

_subscription_ids = itertools.count(1)


class StateStream(Generic[T]):
    """Read-only view of an observable value."""

    def __init__(self, initial: T, *, name: Optional[str] = None) -> None:
        self._value: T = initial
        self._name = name or type(self).__name__
        self._observers: Dict[str, StateObserver] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> T:
        return self._value

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    # ------------------------------------------------------------------ #
    # Observation
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        callback: Callable[[T], Any],
        *,
        identifier: Optional[str] = None,
        emit_current: bool = True,
    ) -> str:
        """
        Register `callback` for value changes.

        Parameters
        ----------
        callback:
            Called with each new value.
        identifier:
            Optional explicit id; generated when omitted. Reusing an id
            replaces the previous observer.
        emit_current:
            Deliver the current value immediately (default).

        Returns
        -------
        str
            Subscription id for `unsubscribe()`.
        """
        if identifier is None:
            identifier = f"{self._name}#{next(_subscription_ids)}"

        self._observers[identifier] = callback
        if emit_current:
            self._deliver(identifier, callback, self._value)
        return identifier

    def unsubscribe(self, identifier: str) -> bool:
        return self._observers.pop(identifier, None) is not None

    def _deliver(self, identifier: str, callback: StateObserver, value: Any) -> None:
        try:
            callback(value)
        except Exception as exc:
            logger.error(
                "State observer failed",
                extra={
                    "stream": self._name,
                    "observer_id": identifier,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )

    def _emit(self, value: T) -> bool:
        if value == self._value:
            return False
        self._value = value
        # Observers may unsubscribe while being notified
        for identifier, callback in list(self._observers.items()):
            self._deliver(identifier, callback, value)
        return True

    # ------------------------------------------------------------------ #
    # Derivation
    # ------------------------------------------------------------------ #

    def map(self, transform: Callable[[T], R], *, name: Optional[str] = None) -> "StateStream[R]":
        """Derived stream holding `transform(value)`."""
        return combine([self], lambda values: transform(values[0]), name=name)

    async def watch(self) -> AsyncIterator[T]:
        """
        Iterate the current value and then each change.

        >>> async for step in service.active_step.watch():
        ...     render(step)
        """
        queue: "asyncio.Queue[T]" = asyncio.Queue()
        identifier = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(identifier)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name}={self._value!r}>"


class MutableStateStream(StateStream[T]):
    """Writable stream owned by exactly one component."""

    @StateStream.value.setter  # type: ignore[attr-defined]
    def value(self, new_value: T) -> None:
        self._emit(new_value)

    def set(self, new_value: T) -> bool:
        """Store `new_value`; returns True when observers were notified."""
        return self._emit(new_value)

    def update(self, transform: Callable[[T], T]) -> bool:
        return self._emit(transform(self._value))


class _DerivedStream(StateStream[R]):
    def __init__(
        self,
        sources: Sequence[StateStream[Any]],
        derive: Callable[[list[Any]], R],
        *,
        name: Optional[str],
    ) -> None:
        self._sources = list(sources)
        self._derive = derive
        super().__init__(self._compute(), name=name or "derived")
        self._source_subscriptions = [
            source.subscribe(self._on_source_changed, emit_current=False)
            for source in self._sources
        ]

    def _compute(self) -> R:
        return self._derive([source.value for source in self._sources])

    def _on_source_changed(self, _value: Any) -> None:
        self._emit(self._compute())

    def detach(self) -> None:
        """Stop following the sources; the value freezes."""
        for source, identifier in zip(self._sources, self._source_subscriptions):
            source.unsubscribe(identifier)
        self._source_subscriptions = []


def combine(
    sources: Sequence[StateStream[Any]],
    derive: Callable[[list[Any]], R],
    *,
    name: Optional[str] = None,
) -> StateStream[R]:
    """
    Derived stream over several sources.

    `derive` receives the list of current source values, in `sources` order,
    and must be free of side effects.
    """
    return _DerivedStream(sources, derive, name=name)


__all__ = ["StateStream", "MutableStateStream", "combine"]
