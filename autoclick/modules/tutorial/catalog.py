"""
Tutorial Catalog
================

Purpose
-------
Static content source of the tutorial module: the ordered list of tutorials
with their steps and optional mini-game, read from the `tutorial.catalog`
configuration list.

Catalog entry shape (YAML)
--------------------------
    - name: "Click on a target"
      description: "Create your first scenario"
      image: first_tutorial.png          # optional
      steps:
        - content: "Press the + button to add a condition."
          anchor: add_condition_button   # optional
          end_condition: monitored_view_click   # optional, default next_button
      game:                              # optional
        rule: still_blue
        instructions: "Click the blue target 10 times."
        required_score: 10
        time_limit_seconds: 20           # optional, default from config

Design Decisions
----------------
- Entries are validated once, at construction. A malformed catalog is a
  packaging error, so it fails startup with ValidationError instead of
  surfacing later as a missing tutorial.
- Index lookups outside the catalog return None; bounds are the
  coordinator's guard, not an error here.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from autoclick.core.logging.logger import get_logger
from autoclick.modules.shared.exceptions import ValidationError
from autoclick.modules.tutorial.models import (
    StepEndCondition,
    TutorialData,
    TutorialGameData,
    TutorialGameRule,
    TutorialInfo,
    TutorialStep,
)

logger = get_logger(__name__)

DEFAULT_TIME_LIMIT_SECONDS = 20


def _require_str(entry: Mapping[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{where}.{key}", "must be a non-empty string")
    return value


def _optional_str(entry: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = entry.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{where}.{key}", "must be a string")
    return value


def _positive_int(value: Any, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(field, f"must be a positive integer, got {value!r}")
    return value


def _parse_enum(enum_type: Any, value: Any, field: str) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(field, f"unknown value {value!r} (allowed: {allowed})") from None


class TutorialCatalog:
    """Ordered, validated tutorial definitions."""

    def __init__(
        self,
        definitions: Sequence[Mapping[str, Any]],
        *,
        default_time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS,
    ) -> None:
        self._default_time_limit = _positive_int(
            default_time_limit_seconds, "tutorial.game.default_time_limit_seconds"
        )
        if not isinstance(definitions, Sequence) or isinstance(definitions, (str, bytes)):
            raise ValidationError("tutorial.catalog", "must be a list of tutorials")

        self._tutorials: List[TutorialData] = [
            self._parse_tutorial(position, entry)
            for position, entry in enumerate(definitions)
        ]

        logger.info(
            "Tutorial catalog loaded",
            extra={
                "tutorial_count": len(self._tutorials),
                "game_count": sum(1 for t in self._tutorials if t.game is not None),
            },
        )

    @classmethod
    def from_config(cls, config_manager: Any) -> "TutorialCatalog":
        return cls(
            config_manager.get("tutorial.catalog", []) or [],
            default_time_limit_seconds=config_manager.get(
                "tutorial.game.default_time_limit_seconds", DEFAULT_TIME_LIMIT_SECONDS
            ),
        )

    # ========================================================================
    # Content source
    # ========================================================================

    @property
    def tutorials_info(self) -> List[TutorialInfo]:
        return [tutorial.info for tutorial in self._tutorials]

    def get_tutorial_data(self, index: int) -> Optional[TutorialData]:
        if 0 <= index < len(self._tutorials):
            return self._tutorials[index]
        return None

    def __len__(self) -> int:
        return len(self._tutorials)

    # ========================================================================
    # Parsing
    # ========================================================================

    def _parse_tutorial(self, position: int, entry: Any) -> TutorialData:
        where = f"tutorial[{position}]"
        if not isinstance(entry, Mapping):
            raise ValidationError(where, "must be a mapping")

        info = TutorialInfo(
            name=_require_str(entry, "name", where),
            description=_require_str(entry, "description", where),
            image=_optional_str(entry, "image", where),
        )

        raw_steps = entry.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ValidationError(f"{where}.steps", "must be a non-empty list")
        steps = tuple(
            self._parse_step(f"{where}.steps[{i}]", step) for i, step in enumerate(raw_steps)
        )

        raw_game = entry.get("game")
        game = self._parse_game(f"{where}.game", raw_game) if raw_game is not None else None

        return TutorialData(info=info, steps=steps, game=game)

    @staticmethod
    def _parse_step(where: str, entry: Any) -> TutorialStep:
        if not isinstance(entry, Mapping):
            raise ValidationError(where, "must be a mapping")

        return TutorialStep(
            content=_require_str(entry, "content", where),
            anchor=_optional_str(entry, "anchor", where),
            end_condition=_parse_enum(
                StepEndCondition,
                entry.get("end_condition", StepEndCondition.NEXT_BUTTON.value),
                f"{where}.end_condition",
            ),
            image=_optional_str(entry, "image", where),
        )

    def _parse_game(self, where: str, entry: Any) -> TutorialGameData:
        if not isinstance(entry, Mapping):
            raise ValidationError(where, "must be a mapping")

        return TutorialGameData(
            rule=_parse_enum(TutorialGameRule, entry.get("rule"), f"{where}.rule"),
            instructions=_require_str(entry, "instructions", where),
            required_score=_positive_int(
                entry.get("required_score"), f"{where}.required_score"
            ),
            time_limit_seconds=_positive_int(
                entry.get("time_limit_seconds", self._default_time_limit),
                f"{where}.time_limit_seconds",
            ),
        )
