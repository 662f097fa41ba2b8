"""
Unit tests for ServiceContainer and application bootstrap.

Tests wiring, accessor guards, shutdown restoring the user scenario and the
main startup / shutdown sequence.
"""

import pytest

from autoclick import main
from autoclick.core.logging.logger import get_logger
from autoclick.core.services.container import ServiceContainer
from autoclick.modules.shared.exceptions import ValidationError
from autoclick.modules.tutorial.service import TutorialService
from tests.fakes import USER_SCENARIO_ID

pytestmark = pytest.mark.unit


@pytest.fixture
def container(config_manager, event_bus, scenario_store, detection_engine, tmp_path):
    return ServiceContainer(
        config_manager,
        event_bus,
        get_logger("tests.container"),
        scenario_store=scenario_store,
        detection_engine=detection_engine,
        data_dir=tmp_path / "data",
        worker_threads=1,
    )


class TestAccessors:
    @pytest.mark.parametrize(
        "name", ["dispatcher", "catalog", "engine", "preferences", "tutorial"]
    )
    def test_access_before_initialize_raises(self, container, name):
        with pytest.raises(RuntimeError, match="not initialized"):
            getattr(container, name)

    def test_tutorial_service_needs_built_dependencies(self, container):
        with pytest.raises(RuntimeError, match="not built"):
            container._build_tutorial_service()


@pytest.mark.asyncio
class TestLifecycle:
    async def test_initialize_wires_services(self, container, tmp_path):
        await container.initialize()

        assert isinstance(container.tutorial, TutorialService)
        assert len(container.catalog) == 3
        assert container.preferences.path == tmp_path / "data" / "tutorial_prefs.json"
        assert container.dispatcher.get_stats()["max_workers"] == 1
        health = await container.health_check()
        assert health["initialized"] is True
        assert health["service_count"] == 5
        assert health["tutorial_session"]["tutorial_mode"] is False

        await container.shutdown()

    async def test_initialize_twice_keeps_services(self, container):
        await container.initialize()
        tutorial = container.tutorial

        await container.initialize()

        assert container.tutorial is tutorial
        await container.shutdown()

    async def test_shutdown_leaves_tutorial_mode(self, container, detection_engine):
        await container.initialize()
        await container.tutorial.setup_tutorial_mode()
        await container.tutorial.start_tutorial(0)

        await container.shutdown()

        assert detection_engine.scenario_id == USER_SCENARIO_ID
        assert container.is_initialized is False
        with pytest.raises(RuntimeError):
            container.tutorial

    async def test_invalid_catalog_fails_initialize(self, container, config_manager):
        config_manager.set("tutorial.catalog", [{"name": "broken"}])

        with pytest.raises(ValidationError):
            await container.initialize()

        assert container.is_initialized is False


@pytest.mark.asyncio
class TestApplication:
    async def test_startup_and_shutdown(self, tmp_path, scenario_store, detection_engine):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "tutorial.yaml").write_text(
            "tutorial:\n"
            "  catalog:\n"
            "    - name: Only\n"
            "      description: One tutorial\n"
            "      steps:\n"
            "        - content: Hello\n"
        )

        app = await main.startup(
            scenario_store,
            detection_engine,
            config_dir=config_dir,
            configure_logging=False,
        )
        await app.container.tutorial.setup_tutorial_mode()
        await app.container.tutorial.start_tutorial(0)

        await main.shutdown(app, configure_logging=False)

        assert [s.tutorial_index for s in scenario_store.success_records()] == [0]
        assert detection_engine.scenario_id == USER_SCENARIO_ID
        assert app.container.is_initialized is False

    async def test_shutdown_without_app(self):
        await main.shutdown(None, configure_logging=False)
