"""
ConfigManager: YAML-backed, dot-notation configuration access for autoclick.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable tutorial configuration.
- Back configuration with built-in defaults plus YAML files from `CONFIG_DIR`.
- Allow in-memory overrides (tests, runtime tweaks) with optional validation.

Responsibilities
----------------
- Load and deep-merge every `*.yaml` / `*.yml` file under the config directory.
- Serve configuration reads from an in-memory cache with simple metrics.
- Apply validated overrides to configuration values.
- Expose a health snapshot for diagnostics.

Key Design Decisions
--------------------
- Built-in defaults < YAML files < in-memory overrides.
- Instance-based: the application builds one ConfigManager at startup and
  injects it into services, so tests can build isolated instances.
- Missing directory or malformed files degrade to defaults with a warning;
  `strict=True` turns load failures into ConfigInitializationError.

Dependencies
------------
- PyYAML for parsing configuration files.
- `autoclick.core.config.config.Config` for the default config directory.
"""

from __future__ import annotations

import copy
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, MutableMapping, Optional

import yaml

from autoclick.core.config.config import Config
from autoclick.core.config.errors import (
    ConfigInitializationError,
    ConfigValidationError,
)
from autoclick.core.logging.logger import get_logger

logger = get_logger(__name__)


# Infra fallbacks used when no YAML file provides a value.
BUILTIN_DEFAULTS: Dict[str, Any] = {
    "core": {
        "event": {
            "listener_timeout": {
                "critical_seconds": 5.0,
                "high_seconds": 5.0,
            },
        },
    },
    "tutorial": {
        "scenario": {
            "name": "Tutorial",
            "detection_quality": 600,
        },
        "game": {
            "default_time_limit_seconds": 20,
            "tick_seconds": 1.0,
        },
        "preferences": {
            "file_name": "tutorial_prefs.json",
        },
        "catalog": [],
    },
}


@dataclass(slots=True)
class ConfigMetrics:
    gets: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    sets: int = 0
    yaml_files_loaded: int = 0
    errors: int = 0


class ConfigManager:
    """
    Configuration access with dot notation (e.g. `"tutorial.scenario.name"`).

    Features
    --------
    - Deep-merged YAML defaults on top of built-in infra defaults.
    - In-memory overrides via `set()`, checked by registered validators.
    - Lightweight metrics and a health snapshot.
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        *,
        defaults: Optional[Mapping[str, Any]] = None,
        strict: bool = False,
    ) -> None:
        self._config_dir = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
        self._strict = strict

        self._defaults: Dict[str, Any] = copy.deepcopy(BUILTIN_DEFAULTS)
        if defaults:
            self._deep_merge_dict(self._defaults, copy.deepcopy(dict(defaults)))

        self._cache: Dict[str, Any] = {}
        self._validators: Dict[str, Callable[[Any], Any]] = {}
        self._metrics = ConfigMetrics()
        self._initialized = False
        self._loaded_at: Optional[float] = None

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    def _load_yaml_configs(self) -> None:
        """Recursively load all YAML config files from the config directory."""
        config_dir = self._config_dir
        if not config_dir.exists():
            if self._strict:
                raise ConfigInitializationError(
                    f"Config directory not found: {config_dir}"
                )
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        if not yaml_files:
            logger.info(
                "No YAML config files discovered; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                self._metrics.errors += 1
                if self._strict:
                    raise ConfigInitializationError(
                        f"Failed to load YAML config {relative}"
                    ) from exc
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": relative,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                continue

            if isinstance(data, dict):
                self._deep_merge_dict(self._defaults, data)
                self._metrics.yaml_files_loaded += 1
                logger.debug("Loaded YAML config", extra={"file": relative})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": relative, "root_type": type(data).__name__},
                )

        logger.info(
            "YAML configs loaded",
            extra={
                "yaml_file_count": self._metrics.yaml_files_loaded,
                "config_dir": str(config_dir),
            },
        )

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def initialize(self) -> None:
        """
        Load YAML defaults into the cache (idempotent).

        Raises
        ------
        ConfigInitializationError
            In strict mode, when the directory or a file cannot be loaded.
        """
        if self._initialized:
            return

        start = time.perf_counter()
        self._load_yaml_configs()
        self._cache = copy.deepcopy(self._defaults)
        self._initialized = True
        self._loaded_at = time.time()

        logger.info(
            "ConfigManager initialized",
            extra={
                "top_level_keys": sorted(self._cache.keys()),
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    def register_validator(self, key: str, validator: Callable[[Any], Any]) -> None:
        """
        Register a validator for a full dot-notation key.

        The validator receives the candidate value and returns the value to
        store (possibly coerced), or raises to reject it.
        """
        self._validators[key] = validator

    def _apply_validator(self, key: str, value: Any) -> Any:
        validator = self._validators.get(key)
        if validator is None:
            return value
        try:
            return validator(value)
        except ConfigValidationError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigValidationError(f"Invalid value for '{key}': {exc}") from exc

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _resolve(source: Mapping[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, Mapping):
                return None
            value = value.get(part)
            if value is None:
                return None
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> config_manager.get("tutorial.scenario.name")
        'Tutorial'
        >>> config_manager.get("tutorial.unknown", 42)
        42
        """
        self._metrics.gets += 1

        if not self._initialized:
            logger.warning(
                "ConfigManager accessed before explicit initialization; "
                "loading now"
            )
            self.initialize()

        value = self._resolve(self._cache, key)
        if value is None:
            self._metrics.cache_misses += 1
            return default

        self._metrics.cache_hits += 1
        return value

    # =========================================================================
    # WRITES
    # =========================================================================

    def set(self, key: str, value: Any) -> None:
        """
        Override a configuration value in memory.

        Raises
        ------
        ConfigValidationError
            If a registered validator rejects the value or the path
            crosses a non-mapping value.
        """
        if not self._initialized:
            self.initialize()

        value = self._apply_validator(key, value)

        parts = key.split(".")
        node: MutableMapping[str, Any] = self._cache
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                child = {}
                node[part] = child
            elif not isinstance(child, MutableMapping):
                raise ConfigValidationError(
                    f"Cannot set '{key}': '{part}' is not a mapping"
                )
            node = child
        node[parts[-1]] = value
        self._metrics.sets += 1

        logger.info("Configuration override applied", extra={"config_key": key})

    def clear_overrides(self) -> None:
        """Drop in-memory overrides and return to loaded defaults."""
        self._cache = copy.deepcopy(self._defaults)
        logger.info("Configuration overrides cleared")

    # =========================================================================
    # HEALTH
    # =========================================================================

    def health_snapshot(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "config_dir": str(self._config_dir),
            "loaded_at": self._loaded_at,
            "validators": sorted(self._validators.keys()),
            "metrics": asdict(self._metrics),
        }


__all__ = ["BUILTIN_DEFAULTS", "ConfigManager", "ConfigMetrics"]
