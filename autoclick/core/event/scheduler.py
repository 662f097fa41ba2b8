"""
EventScheduler: tiered execution of listeners for one publish.

Execution Model
---------------
- CRITICAL, HIGH: one after another in registry order, each bounded by the
  tier timeout. A timed-out listener is cancelled and reported.
- NORMAL: all at once via asyncio.gather; the publish waits for them.
- LOW: spawned as tracked background tasks; the publish does not wait.

Async callbacks are awaited on the loop. Sync callbacks run in the loop's
default executor so a slow observer cannot stall the event loop.

Failures are isolated per listener and reported through
`autoclick.core.event.errors.handle_listener_error`; a failed listener
contributes `None` to the result list.
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Optional

from autoclick.core.event.errors import handle_listener_error
from autoclick.core.event.metrics import EventMetricsRecorder
from autoclick.core.event.types import EventListener, EventPayload, ListenerPriority


class EventScheduler:
    def __init__(self) -> None:
        # Strong references keep fire-and-forget tasks alive until done
        self._background_tasks: set[asyncio.Task[Any]] = set()

    async def execute(
        self,
        *,
        event_name: str,
        payload: EventPayload,
        listeners: list[EventListener],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
        critical_timeout: Optional[float],
        high_timeout: Optional[float],
    ) -> list[Any]:
        """Run `listeners` and return results of every awaited tier."""
        tiers: dict[ListenerPriority, list[EventListener]] = {
            priority: [] for priority in ListenerPriority
        }
        for listener in listeners:
            tiers[listener.priority].append(listener)

        results: list[Any] = []

        for priority, timeout in (
            (ListenerPriority.CRITICAL, critical_timeout),
            (ListenerPriority.HIGH, high_timeout),
        ):
            for listener in tiers[priority]:
                results.append(
                    await self._run_bounded(
                        listener,
                        event_name=event_name,
                        payload=payload,
                        metrics=metrics,
                        logger=logger,
                        timeout=timeout,
                    )
                )

        normal = tiers[ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(
                    *(
                        self._run_listener(
                            lst,
                            event_name=event_name,
                            payload=payload,
                            metrics=metrics,
                            logger=logger,
                        )
                        for lst in normal
                    )
                )
            )

        loop = asyncio.get_running_loop()
        for listener in tiers[ListenerPriority.LOW]:
            task = loop.create_task(
                self._run_listener(
                    listener,
                    event_name=event_name,
                    payload=payload,
                    metrics=metrics,
                    logger=logger,
                ),
                name=f"eventbus-low-{event_name}-{listener.identifier}",
            )
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_bounded(
        self,
        listener: EventListener,
        *,
        event_name: str,
        payload: EventPayload,
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
        timeout: Optional[float],
    ) -> Any:
        call = self._run_listener(
            listener,
            event_name=event_name,
            payload=payload,
            metrics=metrics,
            logger=logger,
        )
        if timeout is None or timeout <= 0:
            return await call

        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "timeout_seconds": timeout,
                },
            )
            handle_listener_error(
                logger=logger,
                event_name=event_name,
                listener=listener,
                exc=exc,
                metrics=metrics,
            )
            return None

    async def _run_listener(
        self,
        listener: EventListener,
        *,
        event_name: str,
        payload: EventPayload,
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> Any:
        logger.debug(
            "EventBus: executing listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
            },
        )
        try:
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)
        except Exception as exc:
            handle_listener_error(
                logger=logger,
                event_name=event_name,
                listener=listener,
                exc=exc,
                metrics=metrics,
            )
            return None

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for every LOW-tier task spawned so far."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
