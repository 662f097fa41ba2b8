"""
Tutorial Mini-Game
==================

Purpose
-------
The interactive part of a tutorial: targets appear inside an area of the
screen and the user (or the automation scenario being built during the
tutorial) clicks them before the countdown ends.

Domain
------
- Target placement per rule (still, moving, blue-with-red-decoy)
- Scoring and win/lose resolution
- Countdown driven by an asyncio task, one tick per `tick_seconds`

Rules
-----
- still_blue: one blue target at the area center; every hit scores.
- moving_blue: one blue target, relocated at random after every hit.
- blue_avoid_red: one blue and one red target, both relocated after every
  blue hit; hitting red loses the game.

The game is won once the score reaches `required_score` and lost when the
countdown reaches zero first.

Design Decisions
----------------
- Game state is exposed as read-only state streams (`state`, `score`,
  `time_left`, `targets`) so the overlay redraws from observation only.
- Placement randomness comes from an injectable `random.Random`.
- `tick()` is public: the countdown task calls it, and tests drive it
  directly instead of sleeping.
"""

from __future__ import annotations

import asyncio
import random
from typing import Optional, Tuple

from autoclick.core.logging.logger import get_logger
from autoclick.core.state.stream import MutableStateStream, StateStream
from autoclick.modules.shared.exceptions import InvalidOperationError, ValidationError
from autoclick.modules.tutorial.models import (
    GameTarget,
    Point,
    Rect,
    TutorialGameData,
    TutorialGameRule,
    TutorialGameState,
    TutorialGameTargetType,
)

logger = get_logger(__name__)

# Attempts at placing the red decoy away from the blue target
_MAX_PLACEMENT_ATTEMPTS = 10


class TutorialGame:
    """One mini-game session bound to a running tutorial."""

    def __init__(
        self,
        data: TutorialGameData,
        *,
        rng: Optional[random.Random] = None,
        tick_seconds: float = 1.0,
    ) -> None:
        if tick_seconds <= 0:
            raise ValidationError("tick_seconds", f"must be > 0, got {tick_seconds}")

        self._data = data
        self._rng = rng or random.Random()
        self._tick_seconds = tick_seconds

        self._area: Optional[Rect] = None
        self._target_size = 0
        self._countdown: Optional[asyncio.Task[None]] = None

        self._state = MutableStateStream(TutorialGameState.NOT_STARTED, name="game.state")
        self._score = MutableStateStream(0, name="game.score")
        self._time_left = MutableStateStream(data.time_limit_seconds, name="game.time_left")
        self._targets: MutableStateStream[Tuple[GameTarget, ...]] = MutableStateStream(
            (), name="game.targets"
        )

    # ========================================================================
    # Observable state
    # ========================================================================

    @property
    def data(self) -> TutorialGameData:
        return self._data

    @property
    def instructions(self) -> str:
        return self._data.instructions

    @property
    def required_score(self) -> int:
        return self._data.required_score

    @property
    def state(self) -> StateStream[TutorialGameState]:
        return self._state

    @property
    def score(self) -> StateStream[int]:
        return self._score

    @property
    def time_left(self) -> StateStream[int]:
        return self._time_left

    @property
    def targets(self) -> StateStream[Tuple[GameTarget, ...]]:
        return self._targets

    @property
    def is_running(self) -> bool:
        return self._state.value is TutorialGameState.RUNNING

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def start(self, area: Rect, target_size: int) -> None:
        """
        Place the targets in `area` and start the countdown.

        Must be called from the event loop. A finished game can be restarted.

        Raises
        ------
        ValidationError
            If the area is empty or cannot hold a target of `target_size`.
        InvalidOperationError
            If the game is already running.
        """
        if self.is_running:
            raise InvalidOperationError("start_game", "game already running")
        if target_size <= 0:
            raise ValidationError("target_size", f"must be > 0, got {target_size}")
        if area.is_empty:
            raise ValidationError("area", f"area is empty: {area}")
        if area.width < target_size or area.height < target_size:
            raise ValidationError(
                "area",
                f"{area.width}x{area.height} area cannot hold a {target_size}px target",
            )

        self._area = area
        self._target_size = target_size
        self._score.set(0)
        self._time_left.set(self._data.time_limit_seconds)
        self._targets.set(self._place_targets())
        self._state.set(TutorialGameState.RUNNING)

        self._countdown = asyncio.get_running_loop().create_task(
            self._run_countdown(),
            name=f"tutorial-game-{self._data.rule.value}",
        )

        logger.info(
            "Tutorial game started",
            extra={
                "rule": self._data.rule.value,
                "required_score": self._data.required_score,
                "time_limit_seconds": self._data.time_limit_seconds,
                "target_size": target_size,
            },
        )

    def stop(self) -> None:
        """Cancel the countdown and return to NOT_STARTED."""
        self._cancel_countdown()
        self._targets.set(())
        self._state.set(TutorialGameState.NOT_STARTED)

    def on_target_hit(self, target_type: TutorialGameTargetType) -> None:
        if not self.is_running:
            logger.debug(
                "Target hit ignored, game not running",
                extra={"target_type": target_type.value, "state": self._state.value.value},
            )
            return

        if target_type is TutorialGameTargetType.RED:
            if self._data.rule is TutorialGameRule.BLUE_AVOID_RED:
                self._finish(TutorialGameState.LOST, reason="red_target_hit")
            return

        self._score.update(lambda score: score + 1)
        if self._score.value >= self._data.required_score:
            self._finish(TutorialGameState.WON, reason="score_reached")
            return

        if self._data.rule is not TutorialGameRule.STILL_BLUE:
            self._targets.set(self._place_targets())

    def tick(self) -> None:
        """Consume one second of the countdown."""
        if not self.is_running:
            return

        self._time_left.update(lambda left: max(0, left - 1))
        if self._time_left.value == 0:
            self._finish(TutorialGameState.LOST, reason="timeout")

    # ========================================================================
    # Internals
    # ========================================================================

    async def _run_countdown(self) -> None:
        while self.is_running:
            await asyncio.sleep(self._tick_seconds)
            self.tick()

    def _cancel_countdown(self) -> None:
        task, self._countdown = self._countdown, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # The countdown finishing the game must not cancel itself mid-tick
        if task is not current:
            task.cancel()

    def _finish(self, state: TutorialGameState, *, reason: str) -> None:
        self._cancel_countdown()
        self._targets.set(())
        self._state.set(state)
        logger.info(
            "Tutorial game finished",
            extra={
                "rule": self._data.rule.value,
                "result": state.value,
                "reason": reason,
                "score": self._score.value,
                "time_left": self._time_left.value,
            },
        )

    def _require_area(self, operation: str) -> Rect:
        if self._area is None:
            raise InvalidOperationError(operation, "game has not been started")
        return self._area

    def _random_position(self) -> Point:
        area, size = self._require_area("place_target"), self._target_size
        return Point(
            self._rng.randint(area.left, area.right - size),
            self._rng.randint(area.top, area.bottom - size),
        )

    def _place_targets(self) -> Tuple[GameTarget, ...]:
        area = self._require_area("place_targets")
        size = self._target_size
        rule = self._data.rule

        if rule is TutorialGameRule.STILL_BLUE:
            center = area.center
            position = Point(
                min(max(area.left, center.x - size // 2), area.right - size),
                min(max(area.top, center.y - size // 2), area.bottom - size),
            )
            return (GameTarget(TutorialGameTargetType.BLUE, position, size),)

        blue = GameTarget(TutorialGameTargetType.BLUE, self._random_position(), size)
        if rule is TutorialGameRule.MOVING_BLUE:
            return (blue,)

        red = GameTarget(TutorialGameTargetType.RED, self._random_position(), size)
        for _ in range(_MAX_PLACEMENT_ATTEMPTS):
            if not _overlaps(blue.bounds, red.bounds):
                break
            red = GameTarget(TutorialGameTargetType.RED, self._random_position(), size)
        return (blue, red)


def _overlaps(first: Rect, second: Rect) -> bool:
    return (
        first.left < second.right
        and second.left < first.right
        and first.top < second.bottom
        and second.top < first.bottom
    )
