"""
Tutorial Models
===============

Purpose
-------
Value objects of the tutorial module: catalog entries, step and game
definitions, the geometry used by the mini-game, and the unlock-annotated
`Tutorial` handed to the UI.

Design Decisions
----------------
- Definitions are frozen dataclasses. Streams de-duplicate on equality, so
  an unchanged derivation never re-notifies observers.
- Enums subclass `str` so catalog YAML can name them directly.
- `ActiveTutorial` pairs the running definition with its live game session;
  the game session is compared by identity.

Dependencies
------------
None - pure data structures (TutorialGame is referenced for typing only)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from autoclick.modules.tutorial.game import TutorialGame


# ============================================================================
# Enums
# ============================================================================


class TutorialGameTargetType(str, Enum):
    """Targets shown by the mini-game."""

    BLUE = "blue"
    RED = "red"


class TutorialGameRule(str, Enum):
    """Mini-game variants."""

    STILL_BLUE = "still_blue"  # one blue target fixed at the area center
    MOVING_BLUE = "moving_blue"  # one blue target, relocated after every hit
    BLUE_AVOID_RED = "blue_avoid_red"  # blue scores, red ends the game


class TutorialGameState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    WON = "won"
    LOST = "lost"

    @property
    def is_finished(self) -> bool:
        return self in (TutorialGameState.WON, TutorialGameState.LOST)


class StepEndCondition(str, Enum):
    """What the overlay waits for before offering the next step."""

    NEXT_BUTTON = "next_button"
    MONITORED_VIEW_CLICK = "monitored_view_click"
    GAME_WON = "game_won"


# ============================================================================
# Geometry
# ============================================================================


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Rect:
    """Screen area in pixels; `right` and `bottom` are exclusive."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def center(self) -> Point:
        return Point(self.left + self.width // 2, self.top + self.height // 2)

    def contains(self, point: Point) -> bool:
        return self.left <= point.x < self.right and self.top <= point.y < self.bottom


# ============================================================================
# Catalog definitions
# ============================================================================


@dataclass(frozen=True)
class TutorialInfo:
    """Display content of a catalog entry."""

    name: str
    description: str
    image: Optional[str] = None


@dataclass(frozen=True)
class TutorialStep:
    """
    One instructional unit of a tutorial.

    `anchor` names the on-screen element the overlay points at; None means the
    step is shown full screen.
    """

    content: str
    anchor: Optional[str] = None
    end_condition: StepEndCondition = StepEndCondition.NEXT_BUTTON
    image: Optional[str] = None


@dataclass(frozen=True)
class TutorialGameData:
    rule: TutorialGameRule
    instructions: str
    required_score: int
    time_limit_seconds: int


@dataclass(frozen=True)
class TutorialData:
    """Full definition of one tutorial."""

    info: TutorialInfo
    steps: Tuple[TutorialStep, ...]
    game: Optional[TutorialGameData] = None


@dataclass(frozen=True)
class GameTarget:
    type: TutorialGameTargetType
    position: Point
    size: int

    @property
    def bounds(self) -> Rect:
        return Rect(
            self.position.x,
            self.position.y,
            self.position.x + self.size,
            self.position.y + self.size,
        )


# ============================================================================
# Runtime views
# ============================================================================


@dataclass(frozen=True)
class Tutorial:
    """Catalog entry as listed to the user, with its lock state."""

    index: int
    info: TutorialInfo
    is_unlocked: bool

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def description(self) -> str:
        return self.info.description


@dataclass(frozen=True)
class ActiveTutorial:
    """Tutorial currently driven by the session engine."""

    data: TutorialData
    game: Optional["TutorialGame"] = None


def is_tutorial_unlocked(index: int, success_count: int) -> bool:
    """The first tutorial is always open; later ones open one success at a time."""
    return index == 0 or index <= success_count
