"""
BackgroundDispatcher: run blocking store calls off the event loop.

Purpose
-------
The coordinator owns its state on the asyncio event loop. Scenario store and
preference calls may block on disk or database I/O, so they are submitted to
a small dedicated thread pool and awaited; the coordinator resumes mutating
its state only after the result is back on the loop.

Design Decisions
----------------
- Dedicated, bounded `ThreadPoolExecutor` (`STORE_WORKER_THREADS`) instead of
  the loop's default executor, so store I/O cannot be starved by sync event
  listeners that also use the default executor.
- Exceptions raised in the worker propagate to the awaiting caller unchanged.
- `shutdown()` waits for in-flight work; later submissions raise RuntimeError.
"""

from __future__ import annotations

import asyncio
import functools
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from autoclick.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class BackgroundDispatcher:
    def __init__(self, max_workers: int = 2, *, thread_name_prefix: str = "autoclick-store") -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._submitted = 0
        self._failed = 0

    @property
    def is_running(self) -> bool:
        return self._executor is not None

    async def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Execute `func(*args, **kwargs)` on a worker thread and await its result.

        Raises
        ------
        RuntimeError
            If the dispatcher has been shut down.
        """
        if self._executor is None:
            raise RuntimeError("BackgroundDispatcher is shut down")

        call = functools.partial(func, *args, **kwargs)
        name = getattr(func, "__qualname__", repr(func))

        self._submitted += 1
        start = time.perf_counter()
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(self._executor, call)
        except Exception:
            self._failed += 1
            raise

        logger.debug(
            "Background call completed",
            extra={
                "call": name,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return result

    def shutdown(self, *, wait: bool = True) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=wait)
        self._executor = None
        logger.info(
            "BackgroundDispatcher shut down",
            extra={"submitted": self._submitted, "failed": self._failed},
        )

    def get_stats(self) -> dict[str, Any]:
        return {
            "running": self.is_running,
            "max_workers": self._max_workers,
            "submitted": self._submitted,
            "failed": self._failed,
        }
