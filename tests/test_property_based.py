"""
Property-based tests (hypothesis) for route step assembly.

Invariants checked over random routes, station sets and completion records:
1. One step per planned stop, numbered 1..N in route order
2. A step is completed exactly when a completion record exists for its station
3. Unknown stations always fall back to the placeholder name and address
4. The first completion record for a station wins
"""
import pytest
from hypothesis import given, settings as h_settings
from hypothesis.strategies import (
    booleans,
    composite,
    integers,
    lists,
    none,
    one_of,
    sampled_from,
    text,
)

from wasteroute.db.models.route_stop_completion import RouteStopCompletion
from wasteroute.db.models.schedule import Schedule
from wasteroute.db.models.tps import TPS
from wasteroute.viewmodels.route_details import RouteProgress, build_route_steps

UNKNOWN_NAME = "Unknown TPS"
UNKNOWN_ADDRESS = "Unknown Address"

# Small id alphabet so routes, stations and completions overlap often
STATION_IDS = sampled_from([f"T{i}" for i in range(8)])


@composite
def completion_records(draw):
    return RouteStopCompletion(
        tps_id=draw(STATION_IDS),
        completed_at=draw(integers(min_value=0, max_value=2**40)),
        proof_photo_url=draw(one_of(none(), just_url())),
        notes=draw(one_of(none(), text(max_size=20))),
        has_issue=draw(booleans()),
    )


def just_url():
    return sampled_from(["https://example.com/a.jpg", "https://example.com/b.jpg", ""])


@composite
def assembly_inputs(draw):
    route = draw(lists(STATION_IDS, max_size=12))
    stations = {
        tps_id: TPS(id=tps_id, name=f"Name {tps_id}", address=f"Addr {tps_id}")
        for tps_id in draw(lists(STATION_IDS, max_size=8, unique=True))
    }
    schedule = Schedule(id="S1", tps_route=route, driver_id="")
    for record in draw(lists(completion_records(), max_size=10)):
        schedule.route_completions.append(record)
    return schedule, stations


class TestRouteStepProperties:

    @pytest.mark.unit
    @h_settings(max_examples=150, deadline=None)
    @given(assembly_inputs())
    def test_one_step_per_stop_in_order(self, inputs):
        schedule, stations = inputs

        steps = build_route_steps(schedule, stations, UNKNOWN_NAME, UNKNOWN_ADDRESS)

        assert len(steps) == len(schedule.tps_route)
        assert [s.step_number for s in steps] == list(range(1, len(steps) + 1))
        assert [s.tps_id for s in steps] == schedule.tps_route

    @pytest.mark.unit
    @h_settings(max_examples=150, deadline=None)
    @given(assembly_inputs())
    def test_completion_matches_record_presence(self, inputs):
        schedule, stations = inputs
        completed_ids = {c.tps_id for c in schedule.route_completions}

        steps = build_route_steps(schedule, stations, UNKNOWN_NAME, UNKNOWN_ADDRESS)

        for step in steps:
            assert step.is_completed == (step.tps_id in completed_ids)
            assert step.actual_arrival_time == step.completed_at
            assert step.estimated_arrival_time is None
            if not step.is_completed:
                assert step.completed_at is None
                assert step.notes == ""
                assert step.has_issue is False

    @pytest.mark.unit
    @h_settings(max_examples=150, deadline=None)
    @given(assembly_inputs())
    def test_station_resolution(self, inputs):
        schedule, stations = inputs

        steps = build_route_steps(schedule, stations, UNKNOWN_NAME, UNKNOWN_ADDRESS)

        for step in steps:
            if step.tps_id in stations:
                assert step.tps_name == stations[step.tps_id].name
                assert step.tps_address == stations[step.tps_id].address
            else:
                assert (step.tps_name, step.tps_address) == (UNKNOWN_NAME, UNKNOWN_ADDRESS)

    @pytest.mark.unit
    @h_settings(max_examples=150, deadline=None)
    @given(assembly_inputs())
    def test_first_completion_wins(self, inputs):
        schedule, stations = inputs

        steps = build_route_steps(schedule, stations, UNKNOWN_NAME, UNKNOWN_ADDRESS)

        for step in steps:
            first = next((c for c in schedule.route_completions if c.tps_id == step.tps_id), None)
            if first is not None:
                assert step.completed_at == first.completed_at
                assert step.notes == (first.notes or "")

    @pytest.mark.unit
    @h_settings(max_examples=150, deadline=None)
    @given(assembly_inputs())
    def test_progress_is_consistent(self, inputs):
        schedule, stations = inputs

        progress = RouteProgress.from_steps(
            build_route_steps(schedule, stations, UNKNOWN_NAME, UNKNOWN_ADDRESS)
        )

        assert 0 <= progress.completed_steps <= progress.total_steps
        assert progress.steps_with_issues <= progress.completed_steps
        assert progress.steps_with_photos <= progress.completed_steps
        assert 0.0 <= progress.completion_ratio <= 1.0
