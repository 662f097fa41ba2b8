"""
autoclick EventBus: async publish/subscribe with tiered listener execution.

Purpose
-------
Decouples the tutorial coordinator from whatever observes it (overlay UI,
analytics, the debug console). Services publish lifecycle events; observers
subscribe by exact name or wildcard.

Responsibilities
----------------
- Register and unregister listeners with a priority tier.
- Publish an event to every matching listener (exact + wildcard).
- Delegate execution to `EventScheduler` (see its module docs for tiers).
- Isolate listener failures and keep per-event metrics.

Design Decisions
----------------
- Instance-based. The service container owns the application bus and tests
  build their own; there is no module-level singleton.
- Tier timeouts come from `core.event.listener_timeout.*` in ConfigManager,
  unless overridden by constructor arguments.
- Listener signatures are checked at subscribe time so a mis-registered
  callback fails where it is registered, not in the middle of a publish.

Dependencies
------------
- autoclick.core.config.manager.ConfigManager (timeouts)
- autoclick.core.event.{registry,scheduler,metrics,context,types}
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Optional

from autoclick.core.event.context import apply_event_log_context
from autoclick.core.event.metrics import EventMetrics, EventMetricsRecorder
from autoclick.core.event.registry import ListenerRegistry
from autoclick.core.event.scheduler import EventScheduler
from autoclick.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from autoclick.core.logging.logger import get_logger

if TYPE_CHECKING:
    from autoclick.core.config.manager import ConfigManager

logger = get_logger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 5.0


class EventBus:
    """
    Async EventBus.

    Must be used from a single event loop.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("tutorial.*", on_tutorial_event)
    >>> await bus.publish("tutorial.started", {"tutorial_index": 0})
    """

    def __init__(
        self,
        config_manager: Optional["ConfigManager"] = None,
        *,
        registry: Optional[ListenerRegistry] = None,
        scheduler: Optional[EventScheduler] = None,
        metrics: Optional[EventMetricsRecorder] = None,
        enable_metrics: bool = True,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._registry = registry or ListenerRegistry()
        self._scheduler = scheduler or EventScheduler()
        self._metrics = metrics or EventMetricsRecorder()
        self._metrics_enabled = enable_metrics

        self._critical_timeout = self._load_timeout(
            "core.event.listener_timeout.critical_seconds", critical_timeout_seconds
        )
        self._high_timeout = self._load_timeout(
            "core.event.listener_timeout.high_seconds", high_timeout_seconds
        )

        logger.info(
            "EventBus initialized",
            extra={
                "metrics_enabled": self._metrics_enabled,
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    def _load_timeout(self, key: str, override: Optional[float]) -> float:
        """Resolve a tier timeout: explicit override, then config, then default."""
        if override is not None:
            return float(override)
        if self._config_manager is None:
            return _DEFAULT_TIMEOUT_SECONDS

        raw = self._config_manager.get(key, _DEFAULT_TIMEOUT_SECONDS)
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid listener timeout in config, using default",
                extra={
                    "config_key": key,
                    "value": repr(raw),
                    "default_value": _DEFAULT_TIMEOUT_SECONDS,
                },
            )
            return _DEFAULT_TIMEOUT_SECONDS

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            # C-level callables may not expose a signature
            return

        params = list(sig.parameters.values())
        positional = [
            p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        variadic = any(p.kind is p.VAR_POSITIONAL for p in params)
        if len(positional) > 1 or (not positional and not variadic):
            name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                "Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(positional)} for '{name}'"
            )

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe `callback` to an event name or wildcard pattern.

        Returns
        -------
        str
            Listener identifier, for `unsubscribe()`.

        Raises
        ------
        ValueError
            If the callback does not take exactly one positional parameter.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
        added = self._registry.add_listener(
            event_name, listener, allow_duplicates=allow_duplicates
        )

        if not added:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        if self._metrics_enabled:
            self._metrics.adjust_listener_count(1)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "once": listener.once,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        removed = self._registry.remove_listener(event_name, identifier)

        if removed:
            if self._metrics_enabled:
                self._metrics.adjust_listener_count(-1)
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )

        return removed

    def clear(self) -> None:
        total = self._registry.clear_all()
        if self._metrics_enabled:
            self._metrics.reset_listener_count()

        logger.info(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Publish
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish `data` to every matching listener.

        Returns the results of CRITICAL/HIGH/NORMAL listeners; LOW listeners
        are not awaited and contribute nothing.
        """
        if self._metrics_enabled:
            self._metrics.record_publish(event_name)

        apply_event_log_context(event_name, data)

        listeners = self._registry.extract_listeners_for_event(event_name)
        if not listeners:
            logger.debug(
                "EventBus: no listeners for event",
                extra={"event_name": event_name},
            )
            return []

        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "listener_count": len(listeners),
                "payload_keys": sorted(data.keys()),
            },
        )

        return await self._scheduler.execute(
            event_name=event_name,
            payload=data,
            listeners=listeners,
            metrics=self._metrics if self._metrics_enabled else None,
            logger=logger,
            critical_timeout=self._critical_timeout,
            high_timeout=self._high_timeout,
        )

    async def drain(self) -> None:
        """Wait for fire-and-forget listeners still running. Used on shutdown."""
        pending = self._scheduler.get_background_task_count()
        if pending:
            logger.info(
                "EventBus: draining background listeners",
                extra={"pending_tasks": pending},
            )
        await self._scheduler.drain()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_metrics(self) -> Optional[EventMetrics]:
        if not self._metrics_enabled:
            return None
        return self._metrics.snapshot()

    def get_metrics_summary(self) -> dict[str, Any]:
        metrics = self.get_metrics()
        return metrics.get_summary() if metrics is not None else {}

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()

    def get_all_events(self) -> list[str]:
        return self._registry.get_all_event_keys()

    def enable_metrics(self) -> None:
        self._metrics_enabled = True
        logger.info("EventBus: metrics enabled")

    def disable_metrics(self) -> None:
        self._metrics_enabled = False
        logger.info("EventBus: metrics disabled")
