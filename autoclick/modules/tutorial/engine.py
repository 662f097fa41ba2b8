"""
Tutorial Session Engine
=======================

Purpose
-------
Drives one tutorial at a time: the step sequence shown by the overlay and
the mini-game embedded in the tutorial, if any.

Domain
------
- `tutorial`: the running tutorial with its live game session, or None
- `current_step`: the step the overlay shows, or None once the sequence is
  over (completed or skipped)
- Step progression (`next_step`, `skip_all_steps`)
- Mini-game pass-through (`start_game`, `on_game_target_hit`)

Design Decisions
----------------
- `next_step()` returns True only for the call that moves past the last
  step. Skipping never reports completion.
- The step index and the running tutorial are separate streams;
  `current_step` is derived from both.
- Game calls without a game are logged no-ops: the overlay may forward
  clicks after the game closed.

Dependencies
------------
- autoclick.core.state (observable state)
- autoclick.modules.tutorial.game.TutorialGame
"""

from __future__ import annotations

import random
from typing import Callable, List, Optional

from autoclick.core.logging.logger import get_logger
from autoclick.core.state.stream import MutableStateStream, StateStream, combine
from autoclick.modules.shared.exceptions import InvalidOperationError
from autoclick.modules.tutorial.game import TutorialGame
from autoclick.modules.tutorial.models import (
    ActiveTutorial,
    Rect,
    TutorialData,
    TutorialGameData,
    TutorialGameTargetType,
    TutorialStep,
)

logger = get_logger(__name__)

GameFactory = Callable[[TutorialGameData], TutorialGame]


def _step_at(values: List[object]) -> Optional[TutorialStep]:
    tutorial, index = values
    if not isinstance(tutorial, ActiveTutorial) or index is None:
        return None
    steps = tutorial.data.steps
    return steps[index] if 0 <= index < len(steps) else None  # type: ignore[operator]


class TutorialEngine:
    """Session engine for tutorials defined by `TutorialData`."""

    def __init__(
        self,
        *,
        tick_seconds: float = 1.0,
        rng: Optional[random.Random] = None,
        game_factory: Optional[GameFactory] = None,
    ) -> None:
        self._game_factory: GameFactory = game_factory or (
            lambda data: TutorialGame(data, rng=rng, tick_seconds=tick_seconds)
        )

        self._tutorial: MutableStateStream[Optional[ActiveTutorial]] = MutableStateStream(
            None, name="engine.tutorial"
        )
        self._step_index: MutableStateStream[Optional[int]] = MutableStateStream(
            None, name="engine.step_index"
        )
        self._current_step: StateStream[Optional[TutorialStep]] = combine(
            [self._tutorial, self._step_index], _step_at, name="engine.current_step"
        )

    # ------------------------------------------------------------------ #
    # Observable state
    # ------------------------------------------------------------------ #

    @property
    def tutorial(self) -> StateStream[Optional[ActiveTutorial]]:
        return self._tutorial

    @property
    def current_step(self) -> StateStream[Optional[TutorialStep]]:
        return self._current_step

    @property
    def step_index(self) -> StateStream[Optional[int]]:
        return self._step_index

    def is_started(self) -> bool:
        return self._tutorial.value is not None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start_tutorial(self, data: TutorialData) -> None:
        """
        Start `data` from its first step.

        Raises
        ------
        InvalidOperationError
            If a tutorial is already running.
        """
        if self.is_started():
            raise InvalidOperationError("start_tutorial", "a tutorial is already running")

        game = self._game_factory(data.game) if data.game is not None else None

        # Index first so current_step never pairs a new tutorial with a stale index
        self._step_index.set(0 if data.steps else None)
        self._tutorial.set(ActiveTutorial(data=data, game=game))

        logger.info(
            "Tutorial engine started",
            extra={
                "tutorial_name": data.info.name,
                "step_count": len(data.steps),
                "has_game": game is not None,
            },
        )

    def stop_tutorial(self) -> None:
        active = self._tutorial.value
        if active is None:
            return

        if active.game is not None:
            active.game.stop()

        self._tutorial.set(None)
        self._step_index.set(None)
        logger.info("Tutorial engine stopped", extra={"tutorial_name": active.data.info.name})

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def next_step(self) -> bool:
        active = self._tutorial.value
        index = self._step_index.value
        if active is None or index is None:
            return False

        next_index = index + 1
        if next_index >= len(active.data.steps):
            self._step_index.set(None)
            logger.debug(
                "Tutorial steps completed",
                extra={"tutorial_name": active.data.info.name},
            )
            return True

        self._step_index.set(next_index)
        return False

    def skip_all_steps(self) -> None:
        if self._step_index.value is None:
            return
        self._step_index.set(None)
        logger.debug("Tutorial steps skipped")

    # ------------------------------------------------------------------ #
    # Game
    # ------------------------------------------------------------------ #

    def _active_game(self, operation: str) -> Optional[TutorialGame]:
        active = self._tutorial.value
        if active is None or active.game is None:
            logger.debug(
                "Tutorial game call ignored, no game",
                extra={"operation": operation, "started": active is not None},
            )
            return None
        return active.game

    def start_game(self, area: Rect, target_size: int) -> None:
        game = self._active_game("start_game")
        if game is not None:
            game.start(area, target_size)

    def on_game_target_hit(self, target_type: TutorialGameTargetType) -> None:
        game = self._active_game("on_game_target_hit")
        if game is not None:
            game.on_target_hit(target_type)
