"""
Pytest Configuration and Fixtures for autoclick Tutorial Tests
==============================================================

Purpose
-------
Centralized test fixtures and configuration for the tutorial test suite.
Provides reusable fixtures for configuration, the event bus, the background
dispatcher, in-memory port fakes and a fully wired TutorialService.

Responsibilities
----------------
- Test environment variables (testing environment, temp data/log dirs)
- ConfigManager built on built-in defaults plus a small test catalog
- Real tutorial components (catalog, engine, preferences) around fakes of
  the host-owned ports (scenario store, detection engine)
- Event recording helper for asserting on published events

Non-Responsibilities
--------------------
- Test implementation (delegated to test files)
- Business logic (delegated to domain components)
- Production configuration (test-specific only)

Architecture Notes
------------------
- Unit tests use in-memory fakes (fast, isolated)
- Fixtures are function scoped; every test gets a fresh service graph
- The game rng is seeded so target placement is reproducible
"""

from __future__ import annotations

import os
import random
import tempfile
from typing import Any, AsyncGenerator, Dict, Generator, List, Tuple

import pytest
import pytest_asyncio

from autoclick.core.config.manager import ConfigManager
from autoclick.core.event.bus import EventBus
from autoclick.core.infra.dispatcher import BackgroundDispatcher
from autoclick.modules.tutorial.catalog import TutorialCatalog
from autoclick.modules.tutorial.engine import TutorialEngine
from autoclick.modules.tutorial.preferences import TutorialPreferences
from autoclick.modules.tutorial.service import TutorialService
from tests.fakes import (
    TEST_CATALOG,
    USER_SCENARIO_ID,
    FakeDetectionEngine,
    FakeScenarioStore,
)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    scratch = tempfile.mkdtemp(prefix="autoclick-tests-")
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    os.environ["DATA_DIR"] = os.path.join(scratch, "data")
    os.environ["LOGS_DIR"] = os.path.join(scratch, "logs")


# ============================================================================
# CONFIG / INFRA FIXTURES
# ============================================================================


@pytest.fixture
def config_manager(tmp_path) -> ConfigManager:
    """
    ConfigManager on built-in defaults with the test catalog.

    Scope: function
    Uses: Anything that reads tutorial tunables
    """
    manager = ConfigManager(
        tmp_path / "config",
        defaults={"tutorial": {"catalog": TEST_CATALOG}},
    )
    manager.initialize()
    return manager


@pytest.fixture
def event_bus(config_manager) -> EventBus:
    """Fresh EventBus per test."""
    return EventBus(config_manager)


@pytest.fixture
def dispatcher() -> Generator[BackgroundDispatcher, None, None]:
    """
    BackgroundDispatcher shut down after the test.

    Scope: function
    """
    instance = BackgroundDispatcher(2, thread_name_prefix="autoclick-test")
    yield instance
    instance.shutdown()


class EventRecorder:
    """Collects (event_name, payload) pairs published on a bus."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def attach(self, bus: EventBus, *event_names: str) -> None:
        for event_name in event_names:
            bus.subscribe(event_name, self._recorder_for(event_name))

    def _recorder_for(self, event_name: str):
        async def record(payload: Dict[str, Any]) -> None:
            self.events.append((event_name, dict(payload)))

        return record

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_name: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event_name]


@pytest.fixture
def recorded_events(event_bus) -> EventRecorder:
    """
    Records every tutorial lifecycle event.

    Scope: function
    Uses: Tests asserting on published events
    """
    recorder = EventRecorder()
    recorder.attach(
        event_bus,
        "tutorial.mode_started",
        "tutorial.mode_stopped",
        "tutorial.started",
        "tutorial.stopped",
        "tutorial.success_recorded",
    )
    return recorder


# ============================================================================
# PORT FAKES
# ============================================================================


@pytest.fixture
def scenario_store() -> FakeScenarioStore:
    return FakeScenarioStore()


@pytest.fixture
def detection_engine() -> FakeDetectionEngine:
    return FakeDetectionEngine(USER_SCENARIO_ID)


# ============================================================================
# TUTORIAL COMPONENTS
# ============================================================================


@pytest.fixture
def catalog() -> TutorialCatalog:
    return TutorialCatalog(TEST_CATALOG)


@pytest.fixture
def engine() -> TutorialEngine:
    """Session engine with a seeded rng and a slow tick (tests call tick())."""
    return TutorialEngine(tick_seconds=60.0, rng=random.Random(1234))


@pytest.fixture
def preferences(tmp_path) -> TutorialPreferences:
    return TutorialPreferences(tmp_path / "prefs.json")


@pytest.fixture
def tutorial_service(
    scenario_store,
    detection_engine,
    catalog,
    engine,
    preferences,
    dispatcher,
    config_manager,
    event_bus,
) -> TutorialService:
    """
    TutorialService wired to real components and fake ports.

    Scope: function
    Uses: Coordinator unit tests
    """
    return TutorialService(
        scenario_store=scenario_store,
        detection_engine=detection_engine,
        content_source=catalog,
        session_engine=engine,
        preferences=preferences,
        dispatcher=dispatcher,
        config_manager=config_manager,
        event_bus=event_bus,
    )


@pytest_asyncio.fixture
async def tutorial_mode(tutorial_service) -> AsyncGenerator[TutorialService, None]:
    """
    TutorialService already in tutorial mode; stops any running game on exit.

    Scope: function
    """
    await tutorial_service.setup_tutorial_mode()
    yield tutorial_service
    await tutorial_service.stop_tutorial_mode()
