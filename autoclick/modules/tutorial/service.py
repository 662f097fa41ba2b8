"""
Tutorial Service
================

Purpose
-------
Coordinates tutorial sessions: swaps the user's automation scenario for a
tutorial scenario while tutorial mode is active, starts and stops tutorials,
keeps the completion bookkeeping, and exposes the tutorial state the UI
observes.

Domain
------
- Enter / leave tutorial mode (save and restore the active scenario)
- Start a tutorial in its backing scenario (created for the first tutorial,
  inherited from the predecessor's success record for later ones)
- Stop a tutorial and record its success once
- Step progression and mini-game pass-through to the session engine
- Derived state streams: `tutorials`, `active_tutorial`, `active_step`,
  `active_game`

Session State
-------------
- `saved_scenario_id`: user scenario captured on entering tutorial mode
- `all_steps_completed`: the engine's answer to the latest
  `next_tutorial_step`, True when that call moved past the last step
- `active_tutorial_index`: running tutorial, or None

Concurrency
-----------
All state lives on the event loop and is mutated between awaits only.
Blocking scenario store calls (`add_scenario`, success lookups and writes)
are awaited through `BackgroundDispatcher`. Overlapping calls are rejected
by guard checks (`start pending`, `stop pending`, `already started`) rather
than locks, and a start re-checks tutorial mode after its store round-trip.
Leaving tutorial mode waits for a stop already in flight, so the success
record is written before the store exits tutorial mode.

Error Handling
--------------
Public operations never raise. Failed preconditions are logged no-ops.
Failed scenario resolution aborts a start before any state is touched.
Store and detection engine failures while stopping are logged and the
session is still cleared so it cannot get stuck. A start that fails after
the scenario was activated is rolled back.

Events
------
- tutorial.mode_started  {saved_scenario_id}
- tutorial.mode_stopped  {restored_scenario_id}
- tutorial.started       {tutorial_index, scenario_id}
- tutorial.stopped       {tutorial_index, all_steps_completed, success_recorded}
- tutorial.success_recorded {tutorial_index, scenario_id, completed}
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from autoclick.core.logging.logger import LogContext, get_logger
from autoclick.core.state.stream import MutableStateStream, StateStream, combine
from autoclick.modules.scenario.models import (
    DATABASE_ID_INSERTION,
    EndConditionOperator,
    Identifier,
    Scenario,
    TutorialSuccess,
)
from autoclick.modules.shared.base_service import BaseService
from autoclick.modules.shared.exceptions import (
    AutoclickDomainException,
    ScenarioResolutionError,
)
from autoclick.modules.tutorial.models import (
    ActiveTutorial,
    Rect,
    Tutorial,
    TutorialGameTargetType,
    TutorialInfo,
    TutorialStep,
    is_tutorial_unlocked,
)

if TYPE_CHECKING:
    from logging import Logger

    from autoclick.core.config.manager import ConfigManager
    from autoclick.core.event.bus import EventBus
    from autoclick.core.infra.dispatcher import BackgroundDispatcher
    from autoclick.modules.tutorial.game import TutorialGame
    from autoclick.modules.tutorial.ports import (
        DetectionEngine,
        PreferenceStore,
        ScenarioStore,
        TutorialContentSource,
        TutorialSessionEngine,
    )

_COMPONENT = "tutorial"


def _scenario_id_of(identifier: Optional[Identifier]) -> Optional[int]:
    return identifier.database_id if identifier is not None else None


class TutorialService(BaseService):
    """
    Tutorial session coordinator.

    Public Methods
    --------------
    - setup_tutorial_mode() -> Save the user scenario, enter tutorial mode
    - stop_tutorial_mode() -> Stop any tutorial, restore the user scenario
    - start_tutorial(index) -> Start tutorial `index` in its backing scenario
    - stop_tutorial() -> Stop the running tutorial, record its success
    - next_tutorial_step() / skip_all_tutorial_steps()
    - start_game(area, target_size) / on_game_target_hit(target_type)
    - is_tutorial_first_time_popup_shown() / set_is_tutorial_first_time_popup_shown()
    """

    def __init__(
        self,
        *,
        scenario_store: ScenarioStore,
        detection_engine: DetectionEngine,
        content_source: TutorialContentSource,
        session_engine: TutorialSessionEngine,
        preferences: PreferenceStore,
        dispatcher: BackgroundDispatcher,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger or get_logger(__name__))

        self._scenarios = scenario_store
        self._detection = detection_engine
        self._content = content_source
        self._engine = session_engine
        self._preferences = preferences
        self._dispatcher = dispatcher

        # Session state
        self._in_tutorial_mode = False
        self._saved_scenario_id: Optional[Identifier] = None
        self._all_steps_completed = False
        self._active_index: MutableStateStream[Optional[int]] = MutableStateStream(
            None, name="tutorial.active_index"
        )
        # Scenario the running tutorial was started in
        self._active_scenario_id: Optional[Identifier] = None

        # Overlap guards
        self._start_pending = False
        self._stop_pending = False
        self._mode_stop_pending = False
        # Set once the in-flight stop_tutorial has fully finished
        self._stop_finished: Optional[asyncio.Event] = None

        self._tutorial_infos: List[TutorialInfo] = list(self._content.tutorials_info)

        self._tutorials: StateStream[List[Tutorial]] = self._scenarios.tutorial_success_list.map(
            self._annotate_tutorials, name="tutorial.tutorials"
        )
        self._active_tutorial: StateStream[Optional[Tutorial]] = combine(
            [self._tutorials, self._active_index],
            _tutorial_at,
            name="tutorial.active_tutorial",
        )
        self._active_game: StateStream[Optional[TutorialGame]] = self._engine.tutorial.map(
            _game_of, name="tutorial.active_game"
        )

    # ========================================================================
    # Derived state
    # ========================================================================

    def _annotate_tutorials(self, successes: List[TutorialSuccess]) -> List[Tutorial]:
        success_count = len(successes)
        return [
            Tutorial(
                index=index,
                info=info,
                is_unlocked=is_tutorial_unlocked(index, success_count),
            )
            for index, info in enumerate(self._tutorial_infos)
        ]

    @property
    def tutorials(self) -> StateStream[List[Tutorial]]:
        return self._tutorials

    @property
    def active_tutorial(self) -> StateStream[Optional[Tutorial]]:
        return self._active_tutorial

    @property
    def active_step(self) -> StateStream[Optional[TutorialStep]]:
        return self._engine.current_step

    @property
    def active_game(self) -> StateStream[Optional[TutorialGame]]:
        return self._active_game

    # ========================================================================
    # Introspection
    # ========================================================================

    @property
    def is_tutorial_mode_active(self) -> bool:
        return self._in_tutorial_mode

    @property
    def saved_scenario_id(self) -> Optional[Identifier]:
        return self._saved_scenario_id

    @property
    def active_tutorial_index(self) -> Optional[int]:
        return self._active_index.value

    @property
    def all_steps_completed(self) -> bool:
        return self._all_steps_completed

    def get_session_snapshot(self) -> Dict[str, Any]:
        return {
            "tutorial_mode": self._in_tutorial_mode,
            "saved_scenario_id": _scenario_id_of(self._saved_scenario_id),
            "active_tutorial_index": self._active_index.value,
            "active_scenario_id": _scenario_id_of(self._active_scenario_id),
            "all_steps_completed": self._all_steps_completed,
            "engine_started": self._engine.is_started(),
        }

    # ========================================================================
    # Tutorial mode
    # ========================================================================

    async def setup_tutorial_mode(self) -> None:
        async with LogContext(component=_COMPONENT, operation="setup_tutorial_mode"):
            if self._in_tutorial_mode:
                self.log_skipped("setup_tutorial_mode", "tutorial mode already active")
                return

            try:
                saved = self._detection.get_scenario_id()
                self._scenarios.start_tutorial_mode()
            except Exception as exc:
                self.log_error("setup_tutorial_mode", exc)
                return
            self._saved_scenario_id = saved
            self._in_tutorial_mode = True

            self.log_operation(
                "setup_tutorial_mode", saved_scenario_id=_scenario_id_of(saved)
            )
            await self.emit_event(
                "tutorial.mode_started", {"saved_scenario_id": _scenario_id_of(saved)}
            )

    async def stop_tutorial_mode(self) -> None:
        async with LogContext(component=_COMPONENT, operation="stop_tutorial_mode"):
            if not self._in_tutorial_mode:
                self.log_skipped("stop_tutorial_mode", "tutorial mode not active")
                return
            if self._mode_stop_pending:
                self.log_skipped("stop_tutorial_mode", "stop already in progress")
                return

            self._mode_stop_pending = True
            try:
                await self.stop_tutorial()
                # A stop started elsewhere must finish before leaving tutorial mode
                if self._stop_finished is not None:
                    await self._stop_finished.wait()

                restored = self._saved_scenario_id
                self._restore_saved_scenario("stop_tutorial_mode")

                self._saved_scenario_id = None
                self._all_steps_completed = False
                self._active_scenario_id = None
                self._active_index.set(None)
                self._in_tutorial_mode = False

                try:
                    self._scenarios.stop_tutorial_mode()
                except Exception as exc:
                    self.log_error("stop_tutorial_mode", exc)
            finally:
                self._mode_stop_pending = False

            self.log_operation(
                "stop_tutorial_mode", restored_scenario_id=_scenario_id_of(restored)
            )
            await self.emit_event(
                "tutorial.mode_stopped", {"restored_scenario_id": _scenario_id_of(restored)}
            )

    # ========================================================================
    # Tutorial start / stop
    # ========================================================================

    async def start_tutorial(self, index: int) -> None:
        async with LogContext(
            component=_COMPONENT, operation="start_tutorial", tutorial_index=index
        ):
            if (
                self._engine.is_started()
                or self._active_index.value is not None
                or self._start_pending
                or self._stop_pending
            ):
                self.log_skipped("start_tutorial", "tutorial already started", tutorial_index=index)
                return
            if not self._in_tutorial_mode or self._mode_stop_pending:
                self.log_skipped("start_tutorial", "tutorial mode not set up", tutorial_index=index)
                return
            if not 0 <= index < len(self._tutorial_infos):
                self.log_skipped(
                    "start_tutorial",
                    "tutorial index out of bounds",
                    tutorial_index=index,
                    tutorial_count=len(self._tutorial_infos),
                )
                return
            data = self._content.get_tutorial_data(index)
            if data is None:
                self.log_skipped("start_tutorial", "no content for tutorial", tutorial_index=index)
                return

            self._start_pending = True
            try:
                scenario_id = await self._resolve_tutorial_scenario(index)
            except Exception as exc:
                # Store failures of any kind abort the start with no state change
                self.log_error("start_tutorial", exc, tutorial_index=index)
                return
            finally:
                self._start_pending = False

            if not self._in_tutorial_mode or self._mode_stop_pending:
                self.log_skipped(
                    "start_tutorial",
                    "tutorial mode stopped while resolving scenario",
                    tutorial_index=index,
                )
                return

            try:
                self._detection.set_scenario_id(scenario_id)
            except Exception as exc:
                self.log_error("start_tutorial", exc, tutorial_index=index)
                return

            self._active_scenario_id = scenario_id
            self._all_steps_completed = False
            self._active_index.set(index)
            try:
                self._engine.start_tutorial(data)
            except Exception as exc:
                self.log_error("start_tutorial", exc, tutorial_index=index)
                self._roll_back_start()
                return

            self.log_operation(
                "start_tutorial",
                tutorial_index=index,
                scenario_id=scenario_id.database_id,
                tutorial_name=data.info.name,
            )
            await self.emit_event(
                "tutorial.started",
                {"tutorial_index": index, "scenario_id": scenario_id.database_id},
            )

    async def _resolve_tutorial_scenario(self, index: int) -> Identifier:
        """
        Scenario the tutorial runs in.

        Raises
        ------
        ScenarioResolutionError
            If the store yields no usable id.
        """
        if index == 0:
            scenario = Scenario(
                id=Identifier(database_id=DATABASE_ID_INSERTION, domain_id=0),
                name=self.get_config("tutorial.scenario.name", "Tutorial"),
                detection_quality=int(
                    self.get_config("tutorial.scenario.detection_quality", 600)
                ),
                end_condition_operator=EndConditionOperator.OR,
            )
            database_id = await self._dispatcher.run(self._scenarios.add_scenario, scenario)
            if database_id is None or database_id == DATABASE_ID_INSERTION:
                raise ScenarioResolutionError(index, "scenario creation returned no id")
            return Identifier(database_id=database_id)

        previous = await self._dispatcher.run(
            self._scenarios.get_tutorial_scenario_database_id, index - 1
        )
        if previous is None:
            raise ScenarioResolutionError(
                index, f"tutorial {index - 1} has no recorded scenario"
            )
        return Identifier(database_id=previous.database_id)

    async def stop_tutorial(self) -> None:
        index = self._active_index.value
        async with LogContext(
            component=_COMPONENT, operation="stop_tutorial", tutorial_index=index
        ):
            if index is None:
                self.log_skipped("stop_tutorial", "no tutorial running")
                return
            if self._stop_pending:
                self.log_skipped("stop_tutorial", "stop already in progress", tutorial_index=index)
                return

            self._stop_pending = True
            stop_finished = self._stop_finished = asyncio.Event()
            try:
                await self._stop_running_tutorial(index)
            finally:
                stop_finished.set()

    async def _stop_running_tutorial(self, index: int) -> None:
        completed = self._all_steps_completed
        scenario_id = self._active_scenario_id
        recorded = False
        try:
            self._engine.stop_tutorial()
            self._detection.stop_detection()
            recorded = await self._record_success(index, scenario_id, completed)
        except Exception as exc:
            # Session must still be cleared below
            self.log_error("stop_tutorial", exc, tutorial_index=index)
        finally:
            self._active_index.set(None)
            self._all_steps_completed = False
            self._active_scenario_id = None
            self._stop_pending = False

        self.log_operation(
            "stop_tutorial",
            tutorial_index=index,
            all_steps_completed=completed,
            success_recorded=recorded,
        )
        await self.emit_event(
            "tutorial.stopped",
            {
                "tutorial_index": index,
                "all_steps_completed": completed,
                "success_recorded": recorded,
            },
        )
        if recorded:
            await self.emit_event(
                "tutorial.success_recorded",
                {
                    "tutorial_index": index,
                    "scenario_id": _scenario_id_of(scenario_id),
                    "completed": completed,
                },
            )

    async def _record_success(
        self, index: int, scenario_id: Optional[Identifier], completed: bool
    ) -> bool:
        """Write the success record unless one exists; True when written."""
        if await self._dispatcher.run(self._scenarios.is_tutorial_succeed, index):
            self.log.debug(
                "Tutorial success already recorded", extra={"tutorial_index": index}
            )
            return False
        if scenario_id is None:
            raise ScenarioResolutionError(index, "no active scenario to record success against")

        await self._dispatcher.run(
            self._scenarios.set_tutorial_success, index, scenario_id, completed
        )
        return True

    def _restore_saved_scenario(self, operation: str) -> None:
        """Hand the detection engine back the scenario saved on entering tutorial mode."""
        if self._saved_scenario_id is None:
            return
        try:
            self._detection.set_scenario_id(self._saved_scenario_id)
        except Exception as exc:
            self.log_error(
                operation, exc, scenario_id=self._saved_scenario_id.database_id
            )

    def _roll_back_start(self) -> None:
        self._active_scenario_id = None
        self._active_index.set(None)
        try:
            self._engine.stop_tutorial()
        except Exception as exc:
            self.log_error("start_tutorial", exc)
        self._restore_saved_scenario("start_tutorial")

    # ========================================================================
    # Steps
    # ========================================================================

    def next_tutorial_step(self) -> None:
        reached_end = self._engine.next_step()
        self._all_steps_completed = reached_end
        if reached_end:
            self.log_operation(
                "next_tutorial_step",
                tutorial_index=self._active_index.value,
                all_steps_completed=True,
            )

    def skip_all_tutorial_steps(self) -> None:
        self._engine.skip_all_steps()
        self.log_operation("skip_all_tutorial_steps", tutorial_index=self._active_index.value)

    # ========================================================================
    # Game
    # ========================================================================

    def start_game(self, area: Rect, target_size: int) -> None:
        try:
            self._engine.start_game(area, target_size)
        except AutoclickDomainException as exc:
            self.log_error(
                "start_game", exc, tutorial_index=self._active_index.value, target_size=target_size
            )

    def on_game_target_hit(self, target_type: TutorialGameTargetType) -> None:
        try:
            self._engine.on_game_target_hit(target_type)
        except AutoclickDomainException as exc:
            self.log_error("on_game_target_hit", exc, target_type=target_type.value)

    # ========================================================================
    # Preferences
    # ========================================================================

    def is_tutorial_first_time_popup_shown(self) -> bool:
        return self._preferences.is_first_time_popup_shown()

    def set_is_tutorial_first_time_popup_shown(self) -> None:
        self._preferences.set_first_time_popup_shown(True)


def _tutorial_at(values: List[Any]) -> Optional[Tutorial]:
    tutorials, index = values
    if index is None or not 0 <= index < len(tutorials):
        return None
    return tutorials[index]


def _game_of(active: Optional[ActiveTutorial]) -> Optional["TutorialGame"]:
    return active.game if active is not None else None
