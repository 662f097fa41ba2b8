"""
Unit tests for configuration.

Tests YAML loading and deep merge, dot-notation reads, overrides with
validators, strict mode, and the static Config environment parsing.
"""

import pytest

from autoclick.core.config.config import Config, Environment
from autoclick.core.config.errors import ConfigInitializationError, ConfigValidationError
from autoclick.core.config.manager import ConfigManager

pytestmark = pytest.mark.unit


@pytest.fixture
def config_dir(tmp_path):
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "tutorial.yaml").write_text(
        "tutorial:\n"
        "  scenario:\n"
        "    name: Guided\n"
        "  game:\n"
        "    tick_seconds: 0.5\n"
    )
    (directory / "overrides.yml").write_text(
        "tutorial:\n"
        "  scenario:\n"
        "    detection_quality: 720\n"
    )
    return directory


class TestConfigManager:
    def test_builtin_defaults_without_directory(self, tmp_path):
        manager = ConfigManager(tmp_path / "missing")
        manager.initialize()

        assert manager.get("tutorial.scenario.name") == "Tutorial"
        assert manager.get("tutorial.scenario.detection_quality") == 600
        assert manager.get("tutorial.catalog") == []

    def test_yaml_files_are_deep_merged(self, config_dir):
        manager = ConfigManager(config_dir)
        manager.initialize()

        assert manager.get("tutorial.scenario.name") == "Guided"
        assert manager.get("tutorial.scenario.detection_quality") == 720
        assert manager.get("tutorial.game.tick_seconds") == 0.5
        assert manager.get("tutorial.game.default_time_limit_seconds") == 20

    def test_missing_key_returns_default(self, config_dir):
        manager = ConfigManager(config_dir)
        manager.initialize()

        assert manager.get("tutorial.nope", 42) == 42
        assert manager.get("tutorial.scenario.name.deeper", "x") == "x"

    def test_get_initializes_lazily(self, config_dir):
        manager = ConfigManager(config_dir)

        assert manager.get("tutorial.scenario.name") == "Guided"
        assert manager.is_initialized is True

    def test_malformed_yaml_is_skipped(self, config_dir):
        (config_dir / "broken.yaml").write_text("tutorial: [unclosed\n")
        manager = ConfigManager(config_dir)
        manager.initialize()

        assert manager.get("tutorial.scenario.name") == "Guided"
        assert manager.health_snapshot()["metrics"]["errors"] == 1

    def test_strict_mode_raises_on_missing_directory(self, tmp_path):
        manager = ConfigManager(tmp_path / "missing", strict=True)

        with pytest.raises(ConfigInitializationError):
            manager.initialize()

    def test_set_and_clear_overrides(self, config_dir):
        manager = ConfigManager(config_dir)
        manager.initialize()

        manager.set("tutorial.scenario.name", "Override")
        assert manager.get("tutorial.scenario.name") == "Override"

        manager.clear_overrides()
        assert manager.get("tutorial.scenario.name") == "Guided"

    def test_validator_coerces_and_rejects(self, config_dir):
        manager = ConfigManager(config_dir)
        manager.initialize()
        manager.register_validator("tutorial.scenario.detection_quality", int)

        manager.set("tutorial.scenario.detection_quality", "650")
        assert manager.get("tutorial.scenario.detection_quality") == 650

        with pytest.raises(ConfigValidationError):
            manager.set("tutorial.scenario.detection_quality", "high")

    def test_set_through_scalar_is_rejected(self, config_dir):
        manager = ConfigManager(config_dir)
        manager.initialize()

        with pytest.raises(ConfigValidationError):
            manager.set("tutorial.scenario.name.first", "x")

    def test_constructor_defaults_are_merged(self, tmp_path):
        manager = ConfigManager(
            tmp_path / "missing", defaults={"tutorial": {"scenario": {"name": "Intro"}}}
        )
        manager.initialize()

        assert manager.get("tutorial.scenario.name") == "Intro"
        assert manager.get("tutorial.scenario.detection_quality") == 600


class TestStaticConfig:
    def test_environment_parsing_falls_back(self):
        assert Environment.from_string("PRODUCTION") is Environment.PRODUCTION
        assert Environment.from_string("moon") is Environment.DEVELOPMENT

    def test_safe_int_bounds(self, monkeypatch):
        monkeypatch.setenv("STORE_WORKER_THREADS", "0")
        assert Config._safe_int("STORE_WORKER_THREADS", 2, min_val=1, max_val=32) == 2

        monkeypatch.setenv("STORE_WORKER_THREADS", "abc")
        assert Config._safe_int("STORE_WORKER_THREADS", 2, min_val=1, max_val=32) == 2

        monkeypatch.setenv("STORE_WORKER_THREADS", "4")
        assert Config._safe_int("STORE_WORKER_THREADS", 2, min_val=1, max_val=32) == 4

    @pytest.mark.parametrize(
        "raw, expected",
        [("yes", True), ("OFF", False), ("1", True), ("maybe", False)],
    )
    def test_safe_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("LOG_COLORS", raw)

        assert Config._safe_bool("LOG_COLORS", False) is expected

    def test_relative_paths_resolve_under_project_root(self, monkeypatch):
        monkeypatch.setenv("DATA_DIR", "var/data")

        assert Config._safe_path("DATA_DIR", Config.PROJECT_ROOT / "data") == (
            Config.PROJECT_ROOT / "var" / "data"
        )
