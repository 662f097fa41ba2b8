"""
Service Container
=================

Purpose
-------
Builds the tutorial services exactly once at application start and hands
out shared references. This replaces a lazily created process-wide
coordinator singleton with explicit wiring.

Responsibilities
----------------
- Construct the dispatcher, catalog, session engine, preferences and the
  TutorialService with their dependencies
- Own their lifecycle (initialize, shutdown)
- Record per-component init timings for diagnostics

Non-Responsibilities
--------------------
- Logging / config bootstrap (done by `autoclick.main.startup`)
- Scenario persistence and detection (injected by the host application)

Architecture Notes
------------------
- Receives ConfigManager and EventBus via constructor injection
- Accessors raise RuntimeError before `initialize()` so wiring mistakes
  surface at the call site
"""

from __future__ import annotations

import random
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, TypeVar

from autoclick.core.config.config import Config
from autoclick.core.infra.dispatcher import BackgroundDispatcher
from autoclick.core.logging.logger import get_logger
from autoclick.modules.tutorial.catalog import TutorialCatalog
from autoclick.modules.tutorial.engine import TutorialEngine
from autoclick.modules.tutorial.preferences import TutorialPreferences
from autoclick.modules.tutorial.service import TutorialService

if TYPE_CHECKING:
    from logging import Logger

    from autoclick.core.config.manager import ConfigManager
    from autoclick.core.event.bus import EventBus
    from autoclick.modules.tutorial.ports import DetectionEngine, ScenarioStore

T = TypeVar("T")

_NOT_INITIALIZED = "ServiceContainer not initialized. Call initialize() first."


class ServiceContainer:
    """
    Dependency container for the tutorial module.

    Usage:
        container = ServiceContainer(
            config_manager, event_bus, logger,
            scenario_store=store, detection_engine=detection,
        )
        await container.initialize()
        await container.tutorial.setup_tutorial_mode()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        *,
        scenario_store: ScenarioStore,
        detection_engine: DetectionEngine,
        data_dir: Optional[Path] = None,
        worker_threads: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger
        self._scenario_store = scenario_store
        self._detection_engine = detection_engine
        self._data_dir = Path(data_dir) if data_dir is not None else Config.DATA_DIR
        self._worker_threads = worker_threads or Config.STORE_WORKER_THREADS
        self._rng = rng

        self._dispatcher: Optional[BackgroundDispatcher] = None
        self._catalog: Optional[TutorialCatalog] = None
        self._engine: Optional[TutorialEngine] = None
        self._preferences: Optional[TutorialPreferences] = None
        self._tutorial: Optional[TutorialService] = None

        self._initialized = False

        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            self._dispatcher = self._timed(
                "dispatcher", lambda: BackgroundDispatcher(self._worker_threads)
            )
            self._catalog = self._timed(
                "catalog", lambda: TutorialCatalog.from_config(self._config_manager)
            )
            self._engine = self._timed(
                "engine",
                lambda: TutorialEngine(
                    tick_seconds=float(
                        self._config_manager.get("tutorial.game.tick_seconds", 1.0)
                    ),
                    rng=self._rng,
                ),
            )
            self._preferences = self._timed(
                "preferences",
                lambda: TutorialPreferences.from_config(self._config_manager, self._data_dir),
            )
            self._tutorial = self._timed("tutorial", self._build_tutorial_service)
        except Exception as exc:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(exc)},
            )
            if self._dispatcher is not None:
                self._dispatcher.shutdown(wait=False)
            raise

        self._init_end = time.perf_counter()
        self._initialized = True

        slowest = max(self._service_init_times, key=self._service_init_times.__getitem__)
        self._logger.info(
            "Service container initialized successfully",
            extra={
                "total_time_seconds": round(self._init_end - self._init_start, 3),
                "service_count": len(self._service_init_times),
                "slowest_service": slowest,
                "slowest_duration": round(self._service_init_times[slowest], 3),
            },
        )

    def _build_tutorial_service(self) -> TutorialService:
        if not (self._dispatcher and self._catalog and self._engine and self._preferences):
            raise RuntimeError("Tutorial service dependencies are not built yet")
        return TutorialService(
            scenario_store=self._scenario_store,
            detection_engine=self._detection_engine,
            content_source=self._catalog,
            session_engine=self._engine,
            preferences=self._preferences,
            dispatcher=self._dispatcher,
            config_manager=self._config_manager,
            event_bus=self._event_bus,
            logger=get_logger(f"{TutorialService.__module__}.{TutorialService.__name__}"),
        )

    def _timed(self, name: str, factory: Callable[[], T]) -> T:
        start = time.perf_counter()
        try:
            instance = factory()
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        """Leave tutorial mode, restoring the user scenario, then stop workers."""
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")

        if self._tutorial is not None:
            await self._tutorial.stop_tutorial_mode()
        if self._dispatcher is not None:
            self._dispatcher.shutdown()

        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "service_count": len(self._service_init_times),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
            "dispatcher": self._dispatcher.get_stats() if self._dispatcher else None,
            "tutorial_session": (
                self._tutorial.get_session_snapshot() if self._tutorial else None
            ),
        }

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def dispatcher(self) -> BackgroundDispatcher:
        if not self._initialized or self._dispatcher is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._dispatcher

    @property
    def catalog(self) -> TutorialCatalog:
        if not self._initialized or self._catalog is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._catalog

    @property
    def engine(self) -> TutorialEngine:
        if not self._initialized or self._engine is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._engine

    @property
    def preferences(self) -> TutorialPreferences:
        if not self._initialized or self._preferences is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._preferences

    @property
    def tutorial(self) -> TutorialService:
        if not self._initialized or self._tutorial is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._tutorial

    @property
    def is_initialized(self) -> bool:
        return self._initialized
