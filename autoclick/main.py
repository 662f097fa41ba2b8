"""
autoclick - Application Bootstrap
=================================

Startup order
-------------
1. Config validation (directories created)
2. Logging subsystem
3. ConfigManager (YAML tunables, tutorial catalog)
4. EventBus
5. Service container (tutorial services)

Shutdown runs in reverse: container (leaves tutorial mode and restores the
user scenario), EventBus drain, logging.

The host application owns the scenario store and the detection engine and
passes them in; this package never builds them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from autoclick.core.config.config import Config
from autoclick.core.config.manager import ConfigManager
from autoclick.core.event.bus import EventBus
from autoclick.core.logging.logger import get_logger, setup_logging, shutdown_logging
from autoclick.core.services.container import ServiceContainer

if TYPE_CHECKING:
    from autoclick.modules.tutorial.ports import DetectionEngine, ScenarioStore

logger = get_logger(__name__)


@dataclass
class Application:
    config_manager: ConfigManager
    event_bus: EventBus
    container: ServiceContainer


# ============================================================================
# Application Bootstrap
# ============================================================================


async def startup(
    scenario_store: ScenarioStore,
    detection_engine: DetectionEngine,
    *,
    config_dir: Optional[Path] = None,
    configure_logging: bool = True,
) -> Application:
    """Initialize infrastructure and the tutorial services."""
    # Step 1: Validate configuration early
    Config.validate()

    # Step 2: Logging
    if configure_logging:
        setup_logging()

    logger.info("========== AUTOCLICK TUTORIAL INITIALIZATION START ==========")
    logger.info("✓ Configuration validated", extra=Config.get_config_summary())

    # Step 3: Config manager
    try:
        config_manager = ConfigManager(config_dir)
        config_manager.initialize()
        logger.info("✓ Config manager initialized")
    except Exception as exc:
        logger.critical(f"Config manager initialization failed: {exc}", exc_info=True)
        raise

    # Step 4: Event bus
    event_bus = EventBus(config_manager)
    logger.info("✓ Event bus available")

    # Step 5: Service container
    try:
        container = ServiceContainer(
            config_manager,
            event_bus,
            get_logger("autoclick.core.services.container"),
            scenario_store=scenario_store,
            detection_engine=detection_engine,
        )
        await container.initialize()
        logger.info("✓ Service container initialized")
    except Exception as exc:
        logger.critical(f"Service container initialization failed: {exc}", exc_info=True)
        raise

    logger.info("========== INFRASTRUCTURE INITIALIZED SUCCESSFULLY ==========")
    return Application(config_manager=config_manager, event_bus=event_bus, container=container)


# ============================================================================
# Application Shutdown
# ============================================================================


async def shutdown(app: Optional[Application], *, configure_logging: bool = True) -> None:
    """Tear down in reverse order; each step runs even if an earlier one failed."""
    logger.info("========== AUTOCLICK TUTORIAL SHUTDOWN START ==========")

    if app is not None:
        # Step 1: Service container
        try:
            await app.container.shutdown()
            logger.info("✓ Service container shut down")
        except Exception as exc:
            logger.error(f"Service container shutdown error: {exc}", exc_info=True)

        # Step 2: Event bus background listeners
        try:
            await app.event_bus.drain()
            logger.info("✓ Event bus drained")
        except Exception as exc:
            logger.error(f"Event bus drain error: {exc}", exc_info=True)

    logger.info("========== SHUTDOWN COMPLETE ==========")

    # Step 3: Logging last so the steps above are recorded
    if configure_logging:
        shutdown_logging()
