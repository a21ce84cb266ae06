"""
Tests for RouteDetailsViewModel

Collaborators are AsyncMock sources returning transient ORM objects, so the
assembly logic is exercised without a database.
"""
import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from wasteroute.core.logging import get_logger, log_context_var
from wasteroute.core.result import Result
from wasteroute.db.models.route_stop_completion import RouteStopCompletion
from wasteroute.db.models.schedule import Schedule
from wasteroute.db.models.tps import TPS
from wasteroute.db.models.user import User, UserRole
from wasteroute.viewmodels.route_details import (
    LOAD_FAILED_MESSAGE,
    SCHEDULE_NOT_FOUND_MESSAGE,
    RouteDetailsUiState,
    RouteDetailsViewModel,
    RouteStep,
    build_route_steps,
)


# ============================================================================
# Helpers
# ============================================================================


def make_schedule(
    schedule_id: str = "S1",
    tps_route: list[str] | None = None,
    driver_id: str = "",
    completions: list[RouteStopCompletion] | None = None,
) -> Schedule:
    schedule = Schedule(id=schedule_id, tps_route=tps_route or [], driver_id=driver_id)
    for completion in completions or []:
        schedule.route_completions.append(completion)
    return schedule


def make_completion(tps_id: str, completed_at: int = 1000, **fields) -> RouteStopCompletion:
    return RouteStopCompletion(tps_id=tps_id, completed_at=completed_at, **fields)


def make_tps(tps_id: str, name: str, address: str = "") -> TPS:
    return TPS(id=tps_id, name=name, address=address)


def make_driver(user_id: str = "D1", name: str = "Budi") -> User:
    return User(id=user_id, name=name, role=UserRole.DRIVER)


def make_sources(schedules=None, users=None, stations=None):
    schedule_source = AsyncMock()
    schedule_source.get_all_schedules.return_value = schedules or []

    user_source = AsyncMock()
    user_source.get_all_users.return_value = Result.success(users or [])

    tps_source = AsyncMock()
    tps_source.get_all_tps.return_value = Result.success(stations or [])
    return schedule_source, user_source, tps_source


def make_view_model(schedules=None, users=None, stations=None):
    sources = make_sources(schedules, users, stations)
    return RouteDetailsViewModel(*sources), sources


# ============================================================================
# build_route_steps
# ============================================================================


class TestBuildRouteSteps:

    @pytest.mark.unit
    def test_one_step_per_stop_numbered_from_one(self):
        schedule = make_schedule(tps_route=["A", "B", "C"])
        tps = {t.id: t for t in [make_tps("A", "Alpha"), make_tps("B", "Beta"), make_tps("C", "Gamma")]}

        steps = build_route_steps(schedule, tps, "Unknown TPS", "Unknown Address")

        assert [s.step_number for s in steps] == [1, 2, 3]
        assert [s.tps_id for s in steps] == ["A", "B", "C"]
        assert [s.tps_name for s in steps] == ["Alpha", "Beta", "Gamma"]

    @pytest.mark.unit
    def test_empty_route_has_no_steps(self):
        assert build_route_steps(make_schedule(tps_route=[]), {}, "x", "y") == ()

    @pytest.mark.unit
    def test_unmatched_station_uses_placeholders(self):
        schedule = make_schedule(tps_route=["missing"])

        (step,) = build_route_steps(schedule, {}, "Unknown TPS", "Unknown Address")

        assert step.tps_name == "Unknown TPS"
        assert step.tps_address == "Unknown Address"
        assert step.is_completed is False

    @pytest.mark.unit
    def test_completion_fields_copied(self):
        completion = make_completion(
            "A",
            completed_at=5000,
            proof_photo_url="https://example.com/a.jpg",
            notes="Gate locked",
            has_issue=True,
        )
        schedule = make_schedule(tps_route=["A"], completions=[completion])

        (step,) = build_route_steps(schedule, {}, "Unknown TPS", "Unknown Address")

        assert step.is_completed is True
        assert step.completed_at == 5000
        assert step.actual_arrival_time == 5000
        assert step.proof_photo_url == "https://example.com/a.jpg"
        assert step.notes == "Gate locked"
        assert step.has_issue is True
        assert step.estimated_arrival_time is None

    @pytest.mark.unit
    def test_incomplete_step_defaults(self):
        (step,) = build_route_steps(make_schedule(tps_route=["A"]), {}, "x", "y")

        assert step.completed_at is None
        assert step.actual_arrival_time is None
        assert step.proof_photo_url is None
        assert step.notes == ""
        assert step.has_issue is False

    @pytest.mark.unit
    def test_missing_notes_become_empty_string(self):
        schedule = make_schedule(tps_route=["A"], completions=[make_completion("A")])

        (step,) = build_route_steps(schedule, {}, "x", "y")

        assert step.notes == ""
        assert step.has_issue is False

    @pytest.mark.unit
    def test_duplicate_completions_first_wins(self):
        schedule = make_schedule(
            tps_route=["A"],
            completions=[
                make_completion("A", completed_at=100, notes="first"),
                make_completion("A", completed_at=200, notes="second"),
            ],
        )

        (step,) = build_route_steps(schedule, {}, "x", "y")

        assert step.completed_at == 100
        assert step.notes == "first"

    @pytest.mark.unit
    def test_completion_for_station_off_route_ignored(self):
        schedule = make_schedule(tps_route=["A"], completions=[make_completion("Z")])

        (step,) = build_route_steps(schedule, {}, "x", "y")

        assert step.is_completed is False


# ============================================================================
# Loading
# ============================================================================


class TestLoadRouteDetails:

    @pytest.mark.unit
    async def test_worked_example(self):
        """Schedule with one resolved and one unknown station, no driver"""
        schedule = make_schedule(
            "S1",
            tps_route=["T1", "T2"],
            completions=[make_completion("T1", completed_at=1000)],
        )
        vm, (_, user_source, _) = make_view_model(
            schedules=[schedule],
            stations=[make_tps("T1", "Alpha", "1 Rd")],
        )

        await vm.load_route_details("S1")

        state = vm.state
        assert state.is_loading is False
        assert state.error is None
        assert state.schedule is schedule
        assert state.driver is None
        assert [t.id for t in state.tps_details] == ["T1"]

        first, second = state.route_steps
        assert (first.step_number, first.tps_id, first.tps_name) == (1, "T1", "Alpha")
        assert first.is_completed is True
        assert first.actual_arrival_time == 1000
        assert (second.step_number, second.tps_id, second.tps_name) == (2, "T2", "Unknown TPS")
        assert second.tps_address == "Unknown Address"
        assert second.is_completed is False
        user_source.get_all_users.assert_not_awaited()

    @pytest.mark.unit
    async def test_resolves_assigned_driver(self):
        driver = make_driver("D1", "Budi")
        schedule = make_schedule(tps_route=["T1"], driver_id="D1")
        vm, _ = make_view_model(
            schedules=[schedule],
            users=[make_driver("D0", "Other"), driver],
        )

        await vm.load_route_details("S1")

        assert vm.state.driver is driver

    @pytest.mark.unit
    async def test_tps_details_follow_route_order(self):
        schedule = make_schedule(tps_route=["B", "X", "A"])
        vm, _ = make_view_model(
            schedules=[schedule],
            stations=[make_tps("A", "Alpha"), make_tps("B", "Beta"), make_tps("C", "Gamma")],
        )

        await vm.load_route_details("S1")

        assert [t.id for t in vm.state.tps_details] == ["B", "A"]

    @pytest.mark.unit
    async def test_duplicate_station_ids_first_wins(self):
        schedule = make_schedule(tps_route=["A"])
        vm, _ = make_view_model(
            schedules=[schedule],
            stations=[make_tps("A", "First"), make_tps("A", "Second")],
        )

        await vm.load_route_details("S1")

        assert vm.state.route_steps[0].tps_name == "First"

    @pytest.mark.unit
    async def test_custom_placeholders(self):
        sources = make_sources(schedules=[make_schedule(tps_route=["A"])])
        vm = RouteDetailsViewModel(
            *sources,
            unknown_tps_name="(no station)",
            unknown_tps_address="(no address)",
        )

        await vm.load_route_details("S1")

        step = vm.state.route_steps[0]
        assert step.tps_name == "(no station)"
        assert step.tps_address == "(no address)"

    @pytest.mark.unit
    async def test_loading_state_published_synchronously(self):
        vm, _ = make_view_model(schedules=[make_schedule()])

        task = vm.load_route_details("S1")

        assert vm.state.is_loading is True
        assert vm.state.error is None
        await task
        assert vm.state.is_loading is False

    @pytest.mark.unit
    async def test_empty_schedule_id_rejected(self):
        vm, _ = make_view_model()

        with pytest.raises(ValueError):
            vm.load_route_details("")


class TestDegradation:

    @pytest.mark.unit
    async def test_schedule_not_found(self):
        vm, (_, user_source, tps_source) = make_view_model(schedules=[make_schedule("OTHER")])

        await vm.load_route_details("S1")

        state = vm.state
        assert state.is_loading is False
        assert state.error == SCHEDULE_NOT_FOUND_MESSAGE == "Schedule not found"
        assert state.schedule is None
        assert state.route_steps == ()
        user_source.get_all_users.assert_not_awaited()
        tps_source.get_all_tps.assert_not_awaited()

    @pytest.mark.unit
    async def test_not_found_keeps_previous_data(self):
        schedules = [make_schedule("S1", tps_route=["A"])]
        vm, (schedule_source, _, _) = make_view_model(schedules=schedules)
        await vm.load_route_details("S1")
        loaded = vm.state

        schedule_source.get_all_schedules.return_value = []
        await vm.load_route_details("S1")

        assert vm.state.error == "Schedule not found"
        assert vm.state.schedule is loaded.schedule
        assert vm.state.route_steps == loaded.route_steps

    @pytest.mark.unit
    async def test_schedule_source_failure_sets_error(self):
        vm, (schedule_source, _, _) = make_view_model()
        schedule_source.get_all_schedules.side_effect = RuntimeError("database is down")

        await vm.load_route_details("S1")

        assert vm.state.is_loading is False
        assert vm.state.error == LOAD_FAILED_MESSAGE.format(detail="database is down")
        assert vm.state.error == "Failed to load route details: database is down"

    @pytest.mark.unit
    @pytest.mark.parametrize("driver_id", ["", "Not Assigned"])
    async def test_unassigned_driver_skips_user_lookup(self, driver_id):
        vm, (_, user_source, _) = make_view_model(
            schedules=[make_schedule(driver_id=driver_id)],
            users=[make_driver()],
        )

        await vm.load_route_details("S1")

        assert vm.state.driver is None
        assert vm.state.error is None
        user_source.get_all_users.assert_not_awaited()

    @pytest.mark.unit
    async def test_unknown_driver_is_absent(self):
        vm, _ = make_view_model(
            schedules=[make_schedule(driver_id="ghost")],
            users=[make_driver("D1")],
        )

        await vm.load_route_details("S1")

        assert vm.state.driver is None
        assert vm.state.error is None

    @pytest.mark.unit
    async def test_user_source_failure_degrades(self):
        vm, (_, user_source, _) = make_view_model(
            schedules=[make_schedule(tps_route=["A"], driver_id="D1")],
            stations=[make_tps("A", "Alpha")],
        )
        user_source.get_all_users.return_value = Result.failure(RuntimeError("users unavailable"))

        await vm.load_route_details("S1")

        assert vm.state.driver is None
        assert vm.state.error is None
        assert vm.state.route_steps[0].tps_name == "Alpha"

    @pytest.mark.unit
    async def test_tps_source_failure_uses_placeholders(self):
        vm, (_, _, tps_source) = make_view_model(
            schedules=[make_schedule(tps_route=["A", "B"], completions=[make_completion("B")])],
        )
        tps_source.get_all_tps.return_value = Result.failure(RuntimeError("tps unavailable"))

        await vm.load_route_details("S1")

        state = vm.state
        assert state.error is None
        assert state.tps_details == ()
        assert [s.tps_name for s in state.route_steps] == ["Unknown TPS", "Unknown TPS"]
        assert [s.is_completed for s in state.route_steps] == [False, True]

    @pytest.mark.unit
    async def test_degradation_logs_carry_schedule_id(self, caplog):
        vm, (_, _, tps_source) = make_view_model(schedules=[make_schedule(tps_route=["A"])])
        collaborator_logger = get_logger("tests.tps_source")

        async def failing_get_all_tps():
            collaborator_logger.warning("TPS query timed out")
            return Result.failure(RuntimeError("timeout"))

        tps_source.get_all_tps.side_effect = failing_get_all_tps

        with caplog.at_level(logging.WARNING):
            await vm.load_route_details("S1")

        messages = {r.getMessage(): r for r in caplog.records}
        assert messages["TPS query timed out"].log_context == {"schedule_id": "S1"}
        assert messages["TPS lookup failed, using placeholders"].log_context == {"schedule_id": "S1"}
        assert log_context_var.get() is None


# ============================================================================
# Refresh / clear_error
# ============================================================================


class TestRefreshAndClearError:

    @pytest.mark.unit
    async def test_refresh_without_schedule_is_noop(self):
        vm, (schedule_source, _, _) = make_view_model()
        before = vm.state

        assert vm.refresh_route_details() is None

        assert vm.state is before
        schedule_source.get_all_schedules.assert_not_awaited()

    @pytest.mark.unit
    async def test_refresh_reloads_current_schedule(self):
        vm, (schedule_source, _, _) = make_view_model(
            schedules=[make_schedule("S1", tps_route=["A"])]
        )
        await vm.load_route_details("S1")
        assert vm.state.route_steps[0].is_completed is False

        schedule_source.get_all_schedules.return_value = [
            make_schedule("S1", tps_route=["A"], completions=[make_completion("A")])
        ]
        task = vm.refresh_route_details()
        assert task is not None
        await task

        assert vm.state.route_steps[0].is_completed is True
        assert schedule_source.get_all_schedules.await_count == 2

    @pytest.mark.unit
    async def test_clear_error(self):
        vm, _ = make_view_model()
        await vm.load_route_details("missing")
        assert vm.state.error is not None

        vm.clear_error()

        assert vm.state.error is None
        assert vm.state.is_loading is False

    @pytest.mark.unit
    async def test_new_load_clears_previous_error(self):
        vm, (schedule_source, _, _) = make_view_model()
        await vm.load_route_details("S1")
        assert vm.state.error == "Schedule not found"

        schedule_source.get_all_schedules.return_value = [make_schedule("S1")]
        task = vm.load_route_details("S1")
        assert vm.state.error is None
        await task

        assert vm.state.error is None
        assert vm.state.schedule is not None


# ============================================================================
# Concurrency: supersede and dispose
# ============================================================================


class TestLoadLifecycle:

    @pytest.mark.unit
    async def test_new_load_supersedes_in_flight_load(self):
        release_first = asyncio.Event()
        first_schedule = make_schedule("S1", tps_route=["A"])
        second_schedule = make_schedule("S2", tps_route=["B", "C"])

        async def get_all_schedules():
            if not release_first.is_set():
                release_first.set()
                await asyncio.sleep(3600)
            return [first_schedule, second_schedule]

        vm, (schedule_source, _, _) = make_view_model()
        schedule_source.get_all_schedules.side_effect = get_all_schedules

        first = vm.load_route_details("S1")
        await release_first.wait()
        second = vm.load_route_details("S2")

        await second
        with pytest.raises(asyncio.CancelledError):
            await first

        assert first.cancelled()
        assert vm.state.schedule is second_schedule
        assert len(vm.state.route_steps) == 2

    @pytest.mark.unit
    async def test_dispose_cancels_and_stops_publishing(self):
        started = asyncio.Event()

        async def get_all_schedules():
            started.set()
            await asyncio.sleep(3600)
            return []

        vm, (schedule_source, _, _) = make_view_model()
        schedule_source.get_all_schedules.side_effect = get_all_schedules
        seen: list[RouteDetailsUiState] = []
        vm.ui_state.add_listener(seen.append)

        task = vm.load_route_details("S1")
        await started.wait()
        vm.dispose()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert vm.is_disposed
        assert vm.ui_state.is_closed
        assert vm.state.is_loading is True
        assert [s.is_loading for s in seen] == [True]

    @pytest.mark.unit
    async def test_load_after_dispose_raises(self):
        vm, _ = make_view_model()
        vm.dispose()
        vm.dispose()

        with pytest.raises(RuntimeError):
            vm.load_route_details("S1")

    @pytest.mark.unit
    async def test_subscribe_sees_loading_then_loaded(self):
        vm, _ = make_view_model(schedules=[make_schedule(tps_route=["A"])])
        snapshots: list[RouteDetailsUiState] = []

        async def collect():
            async for snapshot in vm.ui_state.subscribe():
                snapshots.append(snapshot)

        subscriber = asyncio.create_task(collect())
        await asyncio.sleep(0)

        await vm.load_route_details("S1")
        await asyncio.sleep(0)
        vm.dispose()
        await asyncio.wait_for(subscriber, timeout=1)

        assert snapshots[0] == RouteDetailsUiState()
        assert snapshots[-1].is_loading is False
        assert snapshots[-1].route_steps[0] == RouteStep(
            step_number=1,
            tps_id="A",
            tps_name="Unknown TPS",
            tps_address="Unknown Address",
            is_completed=False,
        )

    @pytest.mark.unit
    async def test_progress_summary(self):
        schedule = make_schedule(
            tps_route=["A", "B", "C", "D"],
            completions=[
                make_completion("A", proof_photo_url="https://example.com/a.jpg"),
                make_completion("B", has_issue=True),
            ],
        )
        vm, _ = make_view_model(schedules=[schedule])

        await vm.load_route_details("S1")

        progress = vm.state.progress
        assert progress.total_steps == 4
        assert progress.completed_steps == 2
        assert progress.steps_with_photos == 1
        assert progress.steps_with_issues == 1
        assert progress.completion_ratio == 0.5
        assert RouteDetailsUiState().progress.completion_ratio == 0.0
