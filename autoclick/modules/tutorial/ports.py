"""
Tutorial Ports
==============

Narrow interfaces through which the tutorial coordinator reaches the rest of
the application. The scenario store and the detection engine live outside
this package; the content source, session engine and preference store have
concrete implementations in this module (`TutorialCatalog`,
`TutorialEngine`, `TutorialPreferences`) but are injected through these
protocols so tests can substitute fakes.

Threading
---------
`ScenarioStore` methods may block; the coordinator calls them through the
BackgroundDispatcher. All other ports are called on the event loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from autoclick.core.state.stream import StateStream
    from autoclick.modules.scenario.models import Identifier, Scenario, TutorialSuccess
    from autoclick.modules.tutorial.models import (
        ActiveTutorial,
        Rect,
        TutorialData,
        TutorialGameTargetType,
        TutorialInfo,
        TutorialStep,
    )


@runtime_checkable
class PreferenceStore(Protocol):
    def is_first_time_popup_shown(self) -> bool: ...

    def set_first_time_popup_shown(self, shown: bool) -> None: ...


@runtime_checkable
class ScenarioStore(Protocol):
    @property
    def tutorial_success_list(self) -> "StateStream[List[TutorialSuccess]]": ...

    def start_tutorial_mode(self) -> None: ...

    def stop_tutorial_mode(self) -> None: ...

    def add_scenario(self, scenario: "Scenario") -> Optional[int]:
        """Insert `scenario`; returns the new database id."""
        ...

    def get_tutorial_scenario_database_id(self, index: int) -> Optional["Identifier"]:
        """Scenario id stored in the success record of tutorial `index`."""
        ...

    def is_tutorial_succeed(self, index: int) -> bool: ...

    def set_tutorial_success(
        self, index: int, scenario_id: "Identifier", completed: bool
    ) -> None: ...


@runtime_checkable
class DetectionEngine(Protocol):
    def get_scenario_id(self) -> Optional["Identifier"]: ...

    def set_scenario_id(self, identifier: "Identifier") -> None: ...

    def stop_detection(self) -> None: ...


@runtime_checkable
class TutorialContentSource(Protocol):
    @property
    def tutorials_info(self) -> List["TutorialInfo"]: ...

    def get_tutorial_data(self, index: int) -> Optional["TutorialData"]: ...


@runtime_checkable
class TutorialSessionEngine(Protocol):
    @property
    def current_step(self) -> "StateStream[Optional[TutorialStep]]": ...

    @property
    def tutorial(self) -> "StateStream[Optional[ActiveTutorial]]": ...

    def is_started(self) -> bool: ...

    def start_tutorial(self, data: "TutorialData") -> None: ...

    def stop_tutorial(self) -> None: ...

    def next_step(self) -> bool:
        """Advance; True only when this call moved past the last step."""
        ...

    def skip_all_steps(self) -> None: ...

    def start_game(self, area: "Rect", target_size: int) -> None: ...

    def on_game_target_hit(self, target_type: "TutorialGameTargetType") -> None: ...


__all__ = [
    "PreferenceStore",
    "ScenarioStore",
    "DetectionEngine",
    "TutorialContentSource",
    "TutorialSessionEngine",
]
