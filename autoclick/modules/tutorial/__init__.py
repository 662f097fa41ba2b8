"""
Tutorial Module
===============

Domain: interactive tutorials run inside a temporary tutorial scenario

Components:
- TutorialService: session coordinator (tutorial mode, start/stop, bookkeeping)
- TutorialEngine: step sequence and mini-game of the running tutorial
- TutorialGame: mini-game session
- TutorialCatalog: tutorial definitions from configuration
- TutorialPreferences: persisted tutorial UI flags
"""

from .catalog import TutorialCatalog
from .engine import TutorialEngine
from .game import TutorialGame
from .models import (
    ActiveTutorial,
    GameTarget,
    Point,
    Rect,
    StepEndCondition,
    Tutorial,
    TutorialData,
    TutorialGameData,
    TutorialGameRule,
    TutorialGameState,
    TutorialGameTargetType,
    TutorialInfo,
    TutorialStep,
)
from .preferences import TutorialPreferences
from .service import TutorialService

__all__ = [
    "TutorialService",
    "TutorialEngine",
    "TutorialGame",
    "TutorialCatalog",
    "TutorialPreferences",
    "ActiveTutorial",
    "GameTarget",
    "Point",
    "Rect",
    "StepEndCondition",
    "Tutorial",
    "TutorialData",
    "TutorialGameData",
    "TutorialGameRule",
    "TutorialGameState",
    "TutorialGameTargetType",
    "TutorialInfo",
    "TutorialStep",
]
