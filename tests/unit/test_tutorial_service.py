"""
Unit tests for TutorialService.

Tests tutorial mode enter/leave, start preconditions and scenario
resolution, stop bookkeeping, step completion tracking, derived state
streams and the game / preference pass-throughs.
"""

import asyncio
import logging
import threading

import pytest

from autoclick.modules.scenario.models import EndConditionOperator, Identifier
from autoclick.modules.shared.exceptions import InvalidOperationError
from autoclick.modules.tutorial.models import (
    Rect,
    TutorialGameState,
    TutorialGameTargetType,
)
from tests.fakes import USER_SCENARIO_ID

pytestmark = pytest.mark.unit


async def _wait_for(event: threading.Event, attempts: int = 500) -> None:
    for _ in range(attempts):
        if event.is_set():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("worker call never started")


@pytest.mark.asyncio
class TestTutorialMode:
    """Entering and leaving tutorial mode."""

    async def test_setup_saves_active_scenario(
        self, tutorial_service, scenario_store, recorded_events
    ):
        await tutorial_service.setup_tutorial_mode()

        assert tutorial_service.is_tutorial_mode_active is True
        assert tutorial_service.saved_scenario_id == USER_SCENARIO_ID
        assert scenario_store.in_tutorial_mode is True
        assert recorded_events.payloads("tutorial.mode_started") == [
            {"saved_scenario_id": USER_SCENARIO_ID.database_id}
        ]

    async def test_setup_twice_is_same_as_once(
        self, tutorial_service, scenario_store, detection_engine
    ):
        await tutorial_service.setup_tutorial_mode()
        detection_engine.scenario_id = Identifier(database_id=99)

        await tutorial_service.setup_tutorial_mode()

        assert tutorial_service.saved_scenario_id == USER_SCENARIO_ID
        assert scenario_store.call_names().count("start_tutorial_mode") == 1

    async def test_setup_store_failure_leaves_mode_inactive(
        self, tutorial_service, scenario_store
    ):
        scenario_store.fail_start_mode = OSError("disk full")

        await tutorial_service.setup_tutorial_mode()

        assert tutorial_service.is_tutorial_mode_active is False
        assert tutorial_service.saved_scenario_id is None

    async def test_stop_without_setup_is_noop(self, tutorial_service, scenario_store):
        await tutorial_service.stop_tutorial_mode()

        assert scenario_store.calls == []

    async def test_stop_restores_original_scenario_exactly(
        self, tutorial_mode, scenario_store, detection_engine, recorded_events
    ):
        await tutorial_mode.start_tutorial(0)
        assert detection_engine.scenario_id != USER_SCENARIO_ID

        await tutorial_mode.stop_tutorial_mode()

        assert detection_engine.scenario_id == USER_SCENARIO_ID
        assert detection_engine.scenario_id.domain_id == USER_SCENARIO_ID.domain_id
        assert tutorial_mode.is_tutorial_mode_active is False
        assert tutorial_mode.saved_scenario_id is None
        assert tutorial_mode.active_tutorial_index is None
        assert scenario_store.in_tutorial_mode is False
        assert recorded_events.payloads("tutorial.mode_stopped") == [
            {"restored_scenario_id": USER_SCENARIO_ID.database_id}
        ]

    async def test_stop_mid_tutorial_stops_and_records(
        self, tutorial_mode, scenario_store, engine
    ):
        await tutorial_mode.start_tutorial(0)

        await tutorial_mode.stop_tutorial_mode()

        assert engine.is_started() is False
        assert [s.tutorial_index for s in scenario_store.success_records()] == [0]
        # Tutorial stop happens before the store leaves tutorial mode
        names = scenario_store.call_names()
        assert names.index("set_tutorial_success") < names.index("stop_tutorial_mode")

    async def test_no_saved_scenario_is_not_restored(
        self, tutorial_service, detection_engine
    ):
        detection_engine.scenario_id = None
        await tutorial_service.setup_tutorial_mode()

        await tutorial_service.stop_tutorial_mode()

        assert detection_engine.set_calls == []
        assert tutorial_service.is_tutorial_mode_active is False

    async def test_store_failure_on_stop_still_clears_state(
        self, tutorial_mode, scenario_store
    ):
        scenario_store.fail_stop_mode = OSError("locked")

        await tutorial_mode.stop_tutorial_mode()

        assert tutorial_mode.is_tutorial_mode_active is False
        assert tutorial_mode.saved_scenario_id is None

    async def test_setup_detection_failure_leaves_mode_inactive(
        self, tutorial_service, scenario_store, detection_engine
    ):
        detection_engine.fail_get = RuntimeError("detection down")

        await tutorial_service.setup_tutorial_mode()

        assert tutorial_service.is_tutorial_mode_active is False
        assert scenario_store.call_names() == []

    async def test_restore_failure_still_leaves_tutorial_mode(
        self, tutorial_mode, scenario_store, detection_engine, recorded_events
    ):
        await tutorial_mode.start_tutorial(0)
        detection_engine.fail_set = RuntimeError("detection down")

        await tutorial_mode.stop_tutorial_mode()

        assert tutorial_mode.is_tutorial_mode_active is False
        assert tutorial_mode.active_tutorial_index is None
        assert scenario_store.in_tutorial_mode is False
        assert [s.tutorial_index for s in scenario_store.success_records()] == [0]
        assert recorded_events.names()[-1] == "tutorial.mode_stopped"


@pytest.mark.asyncio
class TestStartTutorial:
    """Start preconditions and backing scenario resolution."""

    async def test_first_tutorial_creates_scenario(
        self, tutorial_mode, scenario_store, detection_engine, engine, recorded_events
    ):
        await tutorial_mode.start_tutorial(0)

        assert scenario_store.call_names().count("add_scenario") == 1
        scenario = scenario_store.scenarios[100]
        assert scenario.name == "Tutorial"
        assert scenario.detection_quality == 600
        assert scenario.end_condition_operator is EndConditionOperator.OR
        assert scenario.id == Identifier(database_id=0, domain_id=0)

        assert detection_engine.scenario_id == Identifier(database_id=100)
        assert tutorial_mode.active_tutorial_index == 0
        assert tutorial_mode.all_steps_completed is False
        assert engine.is_started() is True
        assert recorded_events.payloads("tutorial.started") == [
            {"tutorial_index": 0, "scenario_id": 100}
        ]

    async def test_scenario_name_and_quality_come_from_config(
        self, tutorial_mode, scenario_store, config_manager
    ):
        config_manager.set("tutorial.scenario.name", "Didacticiel")
        config_manager.set("tutorial.scenario.detection_quality", 450)

        await tutorial_mode.start_tutorial(0)

        scenario = scenario_store.scenarios[100]
        assert (scenario.name, scenario.detection_quality) == ("Didacticiel", 450)

    async def test_first_tutorial_always_creates_new_scenario(
        self, tutorial_mode, scenario_store
    ):
        await tutorial_mode.start_tutorial(0)
        await tutorial_mode.stop_tutorial()

        await tutorial_mode.start_tutorial(0)

        assert scenario_store.call_names().count("add_scenario") == 2
        assert sorted(scenario_store.scenarios) == [100, 101]

    async def test_later_tutorial_reuses_previous_record_scenario(
        self, tutorial_mode, scenario_store, detection_engine
    ):
        scenario_store.seed_success(0, database_id=42)

        await tutorial_mode.start_tutorial(1)

        assert "add_scenario" not in scenario_store.call_names()
        assert detection_engine.scenario_id == Identifier(database_id=42)
        assert tutorial_mode.active_tutorial_index == 1

    async def test_missing_previous_record_aborts_without_state_change(
        self, tutorial_mode, detection_engine, engine
    ):
        await tutorial_mode.start_tutorial(2)

        assert tutorial_mode.active_tutorial_index is None
        assert engine.is_started() is False
        assert detection_engine.set_calls == []

    async def test_creation_without_id_aborts(
        self, tutorial_mode, scenario_store, detection_engine, engine
    ):
        scenario_store.force_add_scenario_none = True

        await tutorial_mode.start_tutorial(0)

        assert tutorial_mode.active_tutorial_index is None
        assert engine.is_started() is False
        assert detection_engine.set_calls == []

    async def test_creation_returning_insertion_id_aborts(
        self, tutorial_mode, scenario_store, engine
    ):
        scenario_store.add_scenario_result = 0

        await tutorial_mode.start_tutorial(0)

        assert engine.is_started() is False

    async def test_store_failure_aborts_without_raising(
        self, tutorial_mode, scenario_store, engine, recorded_events
    ):
        scenario_store.fail_add_scenario = RuntimeError("db closed")

        await tutorial_mode.start_tutorial(0)

        assert tutorial_mode.active_tutorial_index is None
        assert engine.is_started() is False
        assert "tutorial.started" not in recorded_events.names()

    async def test_requires_tutorial_mode(
        self, tutorial_service, scenario_store, engine, caplog
    ):
        with caplog.at_level(logging.INFO):
            await tutorial_service.start_tutorial(0)

        assert scenario_store.calls == []
        assert engine.is_started() is False
        assert "tutorial mode not set up" in caplog.text

    @pytest.mark.parametrize("index", [-1, 3, 50])
    async def test_out_of_bounds_index_is_noop(self, tutorial_mode, scenario_store, index):
        await tutorial_mode.start_tutorial(index)

        assert tutorial_mode.active_tutorial_index is None
        assert "add_scenario" not in scenario_store.call_names()

    async def test_missing_content_is_noop(self, tutorial_mode, catalog, scenario_store, mocker):
        mocker.patch.object(catalog, "get_tutorial_data", return_value=None)

        await tutorial_mode.start_tutorial(0)

        assert tutorial_mode.active_tutorial_index is None
        assert "add_scenario" not in scenario_store.call_names()

    async def test_second_start_while_running_is_noop(
        self, tutorial_mode, scenario_store, detection_engine
    ):
        scenario_store.seed_success(0, database_id=42)
        await tutorial_mode.start_tutorial(0)

        await tutorial_mode.start_tutorial(1)

        assert tutorial_mode.active_tutorial_index == 0
        assert detection_engine.scenario_id == Identifier(database_id=100)

    async def test_overlapping_start_is_rejected(self, tutorial_mode, scenario_store):
        scenario_store.add_scenario_gate = threading.Event()
        first = asyncio.create_task(tutorial_mode.start_tutorial(0))
        await _wait_for(scenario_store.add_scenario_entered)

        await tutorial_mode.start_tutorial(0)
        scenario_store.add_scenario_gate.set()
        await first

        assert scenario_store.call_names().count("add_scenario") == 1
        assert tutorial_mode.active_tutorial_index == 0

    async def test_mode_stopped_while_resolving_aborts_start(
        self, tutorial_service, scenario_store, detection_engine, engine
    ):
        await tutorial_service.setup_tutorial_mode()
        scenario_store.add_scenario_gate = threading.Event()
        start = asyncio.create_task(tutorial_service.start_tutorial(0))
        await _wait_for(scenario_store.add_scenario_entered)

        await tutorial_service.stop_tutorial_mode()
        scenario_store.add_scenario_gate.set()
        await start

        assert engine.is_started() is False
        assert tutorial_service.active_tutorial_index is None
        assert detection_engine.scenario_id == USER_SCENARIO_ID

    async def test_activation_failure_aborts_without_state_change(
        self, tutorial_mode, detection_engine, engine, recorded_events
    ):
        detection_engine.fail_set = RuntimeError("detection down")

        await tutorial_mode.start_tutorial(0)

        assert engine.is_started() is False
        assert tutorial_mode.active_tutorial_index is None
        assert detection_engine.scenario_id == USER_SCENARIO_ID
        assert "tutorial.started" not in recorded_events.names()

    async def test_engine_failure_rolls_back_start(
        self, tutorial_mode, scenario_store, detection_engine, engine, mocker
    ):
        mocker.patch.object(
            engine,
            "start_tutorial",
            side_effect=InvalidOperationError("start_tutorial", "engine busy"),
        )

        await tutorial_mode.start_tutorial(0)

        assert tutorial_mode.active_tutorial_index is None
        assert tutorial_mode.active_tutorial.value is None
        assert detection_engine.scenario_id == USER_SCENARIO_ID

        await tutorial_mode.stop_tutorial()
        assert scenario_store.success_records() == []

    async def test_restart_after_mode_stop_behaves_like_fresh(
        self, tutorial_service, scenario_store, detection_engine
    ):
        await tutorial_service.setup_tutorial_mode()
        await tutorial_service.start_tutorial(0)
        tutorial_service.next_tutorial_step()
        await tutorial_service.stop_tutorial_mode()

        await tutorial_service.start_tutorial(0)

        assert tutorial_service.active_tutorial_index is None
        assert scenario_store.call_names().count("add_scenario") == 1
        assert detection_engine.scenario_id == USER_SCENARIO_ID


@pytest.mark.asyncio
class TestStopTutorial:
    """Stop flow and success bookkeeping."""

    async def test_stop_after_all_steps_records_completed(
        self, tutorial_mode, scenario_store, detection_engine, recorded_events
    ):
        await tutorial_mode.start_tutorial(0)
        for _ in range(3):
            tutorial_mode.next_tutorial_step()

        await tutorial_mode.stop_tutorial()

        (success,) = scenario_store.success_records()
        assert success.tutorial_index == 0
        assert success.scenario_id == Identifier(database_id=100)
        assert success.completed is True
        assert detection_engine.stop_count == 1
        assert tutorial_mode.active_tutorial_index is None
        assert tutorial_mode.all_steps_completed is False
        assert recorded_events.names()[-2:] == ["tutorial.stopped", "tutorial.success_recorded"]
        assert recorded_events.payloads("tutorial.success_recorded") == [
            {"tutorial_index": 0, "scenario_id": 100, "completed": True}
        ]

    async def test_stop_after_skip_records_not_completed(self, tutorial_mode, scenario_store):
        await tutorial_mode.start_tutorial(0)
        tutorial_mode.skip_all_tutorial_steps()

        await tutorial_mode.stop_tutorial()

        (success,) = scenario_store.success_records()
        assert success.completed is False

    async def test_stop_does_not_leave_tutorial_mode(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)

        await tutorial_mode.stop_tutorial()

        assert tutorial_mode.is_tutorial_mode_active is True
        assert tutorial_mode.saved_scenario_id == USER_SCENARIO_ID

    async def test_stop_without_tutorial_is_noop(
        self, tutorial_mode, detection_engine, recorded_events
    ):
        await tutorial_mode.stop_tutorial()

        assert detection_engine.stop_count == 0
        assert "tutorial.stopped" not in recorded_events.names()

    async def test_stop_twice_records_once(self, tutorial_mode, scenario_store):
        await tutorial_mode.start_tutorial(0)
        await tutorial_mode.stop_tutorial()

        await tutorial_mode.stop_tutorial()

        assert len(scenario_store.success_records()) == 1

    async def test_replayed_tutorial_is_not_recorded_again(
        self, tutorial_mode, scenario_store, recorded_events
    ):
        await tutorial_mode.start_tutorial(0)
        await tutorial_mode.stop_tutorial()
        await tutorial_mode.start_tutorial(0)
        for _ in range(3):
            tutorial_mode.next_tutorial_step()

        await tutorial_mode.stop_tutorial()

        (success,) = scenario_store.success_records()
        assert success.completed is False
        assert success.scenario_id == Identifier(database_id=100)
        assert recorded_events.payloads("tutorial.stopped")[-1]["success_recorded"] is False

    async def test_success_store_failure_still_clears_session(
        self, tutorial_mode, scenario_store, engine, recorded_events
    ):
        await tutorial_mode.start_tutorial(0)
        scenario_store.fail_set_success = OSError("write failed")

        await tutorial_mode.stop_tutorial()

        assert tutorial_mode.active_tutorial_index is None
        assert engine.is_started() is False
        assert recorded_events.payloads("tutorial.stopped")[-1]["success_recorded"] is False

    async def test_mode_stop_waits_for_stop_in_flight(
        self, tutorial_service, scenario_store, detection_engine
    ):
        await tutorial_service.setup_tutorial_mode()
        await tutorial_service.start_tutorial(0)
        scenario_store.success_lookup_gate = threading.Event()
        stop = asyncio.create_task(tutorial_service.stop_tutorial())
        await _wait_for(scenario_store.success_lookup_entered)

        mode_stop = asyncio.create_task(tutorial_service.stop_tutorial_mode())
        await asyncio.sleep(0.05)
        assert "stop_tutorial_mode" not in scenario_store.call_names()

        scenario_store.success_lookup_gate.set()
        await asyncio.gather(stop, mode_stop)

        names = scenario_store.call_names()
        assert names.index("set_tutorial_success") < names.index("stop_tutorial_mode")
        assert [s.tutorial_index for s in scenario_store.success_records()] == [0]
        assert tutorial_service.is_tutorial_mode_active is False
        assert detection_engine.scenario_id == USER_SCENARIO_ID

    async def test_detection_failure_still_clears_session(
        self, tutorial_mode, detection_engine, engine
    ):
        await tutorial_mode.start_tutorial(0)
        detection_engine.fail_stop = RuntimeError("detector crashed")

        await tutorial_mode.stop_tutorial()

        assert tutorial_mode.active_tutorial_index is None
        assert engine.is_started() is False

    async def test_full_session(self, tutorial_service, scenario_store, detection_engine):
        await tutorial_service.setup_tutorial_mode()
        await tutorial_service.start_tutorial(0)
        for _ in range(3):
            tutorial_service.next_tutorial_step()
        await tutorial_service.stop_tutorial()
        await tutorial_service.setup_tutorial_mode()

        await tutorial_service.stop_tutorial_mode()

        (success,) = scenario_store.success_records()
        assert success.completed is True
        assert scenario_store.call_names().count("start_tutorial_mode") == 1
        assert detection_engine.scenario_id == USER_SCENARIO_ID


@pytest.mark.asyncio
class TestSteps:
    """Step progression and completion tracking."""

    async def test_walking_every_step_sets_completed(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)

        tutorial_mode.next_tutorial_step()
        tutorial_mode.next_tutorial_step()
        assert tutorial_mode.all_steps_completed is False
        tutorial_mode.next_tutorial_step()

        assert tutorial_mode.all_steps_completed is True
        assert tutorial_mode.active_step.value is None

    async def test_next_past_the_end_clears_completion(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)
        for _ in range(3):
            tutorial_mode.next_tutorial_step()

        tutorial_mode.next_tutorial_step()

        assert tutorial_mode.all_steps_completed is False

    async def test_skip_never_sets_completed(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)
        tutorial_mode.next_tutorial_step()

        tutorial_mode.skip_all_tutorial_steps()
        tutorial_mode.next_tutorial_step()

        assert tutorial_mode.all_steps_completed is False
        assert tutorial_mode.active_step.value is None

    async def test_completion_resets_on_new_tutorial(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)
        for _ in range(3):
            tutorial_mode.next_tutorial_step()
        await tutorial_mode.stop_tutorial()

        await tutorial_mode.start_tutorial(1)

        assert tutorial_mode.all_steps_completed is False

    async def test_next_without_tutorial_does_nothing(self, tutorial_service):
        tutorial_service.next_tutorial_step()

        assert tutorial_service.all_steps_completed is False


@pytest.mark.asyncio
class TestDerivedState:
    """Observable tutorial list, active tutorial, step and game."""

    async def test_only_first_tutorial_unlocked_initially(self, tutorial_service):
        unlocked = [t.is_unlocked for t in tutorial_service.tutorials.value]

        assert unlocked == [True, False, False]
        assert [t.name for t in tutorial_service.tutorials.value] == [
            "First scenario",
            "Moving target",
            "Avoid red",
        ]

    async def test_unlock_follows_success_count(self, tutorial_service, scenario_store):
        seen = []
        tutorial_service.tutorials.subscribe(
            lambda tutorials: seen.append([t.is_unlocked for t in tutorials])
        )

        scenario_store.seed_success(0, database_id=42)
        scenario_store.seed_success(1, database_id=42)

        assert seen == [
            [True, False, False],
            [True, True, False],
            [True, True, True],
        ]

    async def test_active_tutorial_follows_running_index(self, tutorial_mode):
        assert tutorial_mode.active_tutorial.value is None

        await tutorial_mode.start_tutorial(0)
        active = tutorial_mode.active_tutorial.value
        await tutorial_mode.stop_tutorial()

        assert active is not None and active.index == 0
        assert tutorial_mode.active_tutorial.value is None

    async def test_active_tutorial_reflects_unlock_changes(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)

        await tutorial_mode.stop_tutorial()
        await tutorial_mode.start_tutorial(1)

        assert tutorial_mode.active_tutorial.value.is_unlocked is True

    async def test_active_step_tracks_engine(self, tutorial_mode):
        contents = []
        tutorial_mode.active_step.subscribe(
            lambda step: contents.append(step.content if step else None)
        )

        await tutorial_mode.start_tutorial(0)
        tutorial_mode.next_tutorial_step()

        assert contents == [None, "Welcome", "Press +"]

    async def test_active_game_present_only_for_game_tutorials(
        self, tutorial_mode, scenario_store
    ):
        await tutorial_mode.start_tutorial(0)
        assert tutorial_mode.active_game.value is None
        await tutorial_mode.stop_tutorial()

        await tutorial_mode.start_tutorial(1)

        game = tutorial_mode.active_game.value
        assert game is not None
        assert game.required_score == 3

    async def test_session_snapshot(self, tutorial_mode):
        await tutorial_mode.start_tutorial(0)

        snapshot = tutorial_mode.get_session_snapshot()

        assert snapshot == {
            "tutorial_mode": True,
            "saved_scenario_id": USER_SCENARIO_ID.database_id,
            "active_tutorial_index": 0,
            "active_scenario_id": 100,
            "all_steps_completed": False,
            "engine_started": True,
        }


@pytest.mark.asyncio
class TestGamePassThrough:
    """Mini-game calls forwarded to the session engine."""

    async def _start_game_tutorial(self, service, store):
        store.seed_success(0, database_id=42)
        await service.start_tutorial(1)

    async def test_start_game_runs_game(self, tutorial_mode, scenario_store):
        await self._start_game_tutorial(tutorial_mode, scenario_store)

        tutorial_mode.start_game(Rect(0, 0, 300, 300), 30)

        assert tutorial_mode.active_game.value.state.value is TutorialGameState.RUNNING

    async def test_target_hit_scores(self, tutorial_mode, scenario_store):
        await self._start_game_tutorial(tutorial_mode, scenario_store)
        tutorial_mode.start_game(Rect(0, 0, 300, 300), 30)

        tutorial_mode.on_game_target_hit(TutorialGameTargetType.BLUE)

        assert tutorial_mode.active_game.value.score.value == 1

    async def test_invalid_area_is_logged_not_raised(self, tutorial_mode, scenario_store):
        await self._start_game_tutorial(tutorial_mode, scenario_store)

        tutorial_mode.start_game(Rect(0, 0, 10, 10), 30)

        assert tutorial_mode.active_game.value.is_running is False

    async def test_game_calls_without_tutorial_are_ignored(self, tutorial_mode):
        tutorial_mode.start_game(Rect(0, 0, 300, 300), 30)
        tutorial_mode.on_game_target_hit(TutorialGameTargetType.RED)

        assert tutorial_mode.active_game.value is None

    async def test_stopping_tutorial_stops_game(self, tutorial_mode, scenario_store):
        await self._start_game_tutorial(tutorial_mode, scenario_store)
        tutorial_mode.start_game(Rect(0, 0, 300, 300), 30)
        game = tutorial_mode.active_game.value

        await tutorial_mode.stop_tutorial()

        assert game.state.value is TutorialGameState.NOT_STARTED
        assert tutorial_mode.active_game.value is None


class TestPreferencesPassThrough:
    def test_popup_flag_round_trip(self, tutorial_service, preferences):
        assert tutorial_service.is_tutorial_first_time_popup_shown() is False

        tutorial_service.set_is_tutorial_first_time_popup_shown()

        assert tutorial_service.is_tutorial_first_time_popup_shown() is True
        assert preferences.is_first_time_popup_shown() is True
