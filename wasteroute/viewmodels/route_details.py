"""
Route Details View Model

Turns a schedule id into a display-ready route: the schedule, its driver,
the stations it visits and one ``RouteStep`` per planned stop merged with
that stop's completion record.

Only the schedule lookup is fatal. A missing driver or station degrades to
"no driver" / placeholder text and is logged, never surfaced as an error.

State is a single immutable ``RouteDetailsUiState`` published through a
``StateFlow``; the view model is its only writer. A new load cancels the one
in flight, and ``dispose()`` cancels it and closes the flow so nothing is
published afterwards.
"""
import asyncio
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional, Protocol, Sequence

from wasteroute.core.config import settings
from wasteroute.core.logging import get_logger, log_context
from wasteroute.core.result import Result
from wasteroute.core.state_flow import StateFlow
from wasteroute.db.models.route_stop_completion import RouteStopCompletion
from wasteroute.db.models.schedule import Schedule
from wasteroute.db.models.tps import TPS
from wasteroute.db.models.user import User
from wasteroute.domain.services.schedule_service import is_driver_assigned

logger = get_logger(__name__)

SCHEDULE_NOT_FOUND_MESSAGE = "Schedule not found"
LOAD_FAILED_MESSAGE = "Failed to load route details: {detail}"


class ScheduleSource(Protocol):
    async def get_all_schedules(self) -> Sequence[Schedule]: ...


class UserSource(Protocol):
    async def get_all_users(self) -> Result[Sequence[User]]: ...


class TPSSource(Protocol):
    async def get_all_tps(self) -> Result[Sequence[TPS]]: ...


@dataclass(frozen=True)
class RouteStep:
    """One planned stop merged with its completion status"""

    step_number: int
    tps_id: str
    tps_name: str
    tps_address: str
    is_completed: bool
    completed_at: Optional[int] = None
    proof_photo_url: Optional[str] = None
    notes: str = ""
    has_issue: bool = False
    # Not computed yet; reserved for ETAs from route optimisation
    estimated_arrival_time: Optional[int] = None
    actual_arrival_time: Optional[int] = None


@dataclass(frozen=True)
class RouteProgress:
    total_steps: int = 0
    completed_steps: int = 0
    steps_with_photos: int = 0
    steps_with_issues: int = 0

    @property
    def completion_ratio(self) -> float:
        if self.total_steps == 0:
            return 0.0
        return self.completed_steps / self.total_steps

    @classmethod
    def from_steps(cls, steps: Sequence[RouteStep]) -> "RouteProgress":
        return cls(
            total_steps=len(steps),
            completed_steps=sum(1 for s in steps if s.is_completed),
            steps_with_photos=sum(1 for s in steps if s.proof_photo_url),
            steps_with_issues=sum(1 for s in steps if s.has_issue),
        )


@dataclass(frozen=True)
class RouteDetailsUiState:
    is_loading: bool = False
    schedule: Optional[Schedule] = None
    driver: Optional[User] = None
    tps_details: tuple[TPS, ...] = ()
    route_steps: tuple[RouteStep, ...] = ()
    error: Optional[str] = None

    @property
    def progress(self) -> RouteProgress:
        return RouteProgress.from_steps(self.route_steps)


def build_route_steps(
    schedule: Schedule,
    tps_by_id: Mapping[str, TPS],
    unknown_name: str,
    unknown_address: str,
) -> tuple[RouteStep, ...]:
    """
    One step per id in ``schedule.tps_route``, numbered from 1 in route order.

    Duplicate completion records for a station resolve to the first one in
    list order.
    """
    completions: dict[str, RouteStopCompletion] = {}
    for completion in schedule.route_completions or []:
        completions.setdefault(completion.tps_id, completion)

    steps = []
    for index, tps_id in enumerate(schedule.tps_route or [], start=1):
        tps = tps_by_id.get(tps_id)
        completion = completions.get(tps_id)
        completed_at = completion.completed_at if completion is not None else None

        steps.append(RouteStep(
            step_number=index,
            tps_id=tps_id,
            tps_name=tps.name if tps is not None else unknown_name,
            tps_address=tps.address if tps is not None else unknown_address,
            is_completed=completion is not None,
            completed_at=completed_at,
            proof_photo_url=completion.proof_photo_url if completion is not None else None,
            notes=(completion.notes or "") if completion is not None else "",
            has_issue=bool(completion.has_issue) if completion is not None else False,
            estimated_arrival_time=None,
            actual_arrival_time=completed_at,
        ))
    return tuple(steps)


class RouteDetailsViewModel:
    """
    Loads and publishes route details for one schedule at a time.

    Must be driven from inside a running event loop: ``load_route_details``
    schedules its work as an asyncio task and returns that task.
    """

    def __init__(
        self,
        schedule_source: ScheduleSource,
        user_source: UserSource,
        tps_source: TPSSource,
        unknown_tps_name: str | None = None,
        unknown_tps_address: str | None = None,
    ):
        self._schedules = schedule_source
        self._users = user_source
        self._stations = tps_source
        self._unknown_name = unknown_tps_name or settings.UNKNOWN_TPS_NAME
        self._unknown_address = unknown_tps_address or settings.UNKNOWN_TPS_ADDRESS

        self._state: StateFlow[RouteDetailsUiState] = StateFlow(RouteDetailsUiState())
        self._load_task: asyncio.Task | None = None
        self._disposed = False

    @property
    def ui_state(self) -> StateFlow[RouteDetailsUiState]:
        return self._state

    @property
    def state(self) -> RouteDetailsUiState:
        return self._state.value

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def load_route_details(self, schedule_id: str) -> asyncio.Task:
        """
        Start loading ``schedule_id``, superseding any load in flight.

        The loading snapshot is published before this method returns.
        """
        if self._disposed:
            raise RuntimeError("RouteDetailsViewModel has been disposed")
        if not schedule_id:
            raise ValueError("schedule_id must be a non-empty string")

        self._cancel_load()
        self._state.update(lambda s: replace(s, is_loading=True, error=None))

        task = asyncio.get_running_loop().create_task(
            self._load(schedule_id),
            name=f"route-details:{schedule_id}",
        )
        self._load_task = task
        task.add_done_callback(self._on_load_done)
        return task

    def refresh_route_details(self) -> asyncio.Task | None:
        """Reload the current schedule; no-op when nothing is loaded"""
        schedule = self._state.value.schedule
        if schedule is None:
            return None
        return self.load_route_details(schedule.id)

    def clear_error(self) -> None:
        self._state.update(lambda s: replace(s, error=None))

    def dispose(self) -> None:
        """Cancel any load in flight and stop publishing"""
        if self._disposed:
            return
        self._disposed = True
        self._cancel_load()
        self._state.close()

    def _cancel_load(self) -> None:
        task = self._load_task
        if task is not None and not task.done():
            logger.debug("Cancelling superseded route details load", extra_data={"task": task.get_name()})
            task.cancel()
        self._load_task = None

    def _on_load_done(self, task: asyncio.Task) -> None:
        if self._load_task is task:
            self._load_task = None

    def _publish(self, func: Callable[[RouteDetailsUiState], RouteDetailsUiState]) -> None:
        # A superseded load must not overwrite its replacement's state
        if asyncio.current_task() is not self._load_task:
            return
        self._state.update(func)

    async def _load(self, schedule_id: str) -> None:
        with log_context(schedule_id=schedule_id):
            await self._load_in_context(schedule_id)

    async def _load_in_context(self, schedule_id: str) -> None:
        try:
            logger.debug("Loading route details", extra_data={"schedule_id": schedule_id})

            schedules = await self._schedules.get_all_schedules()
            schedule = next((s for s in schedules if s.id == schedule_id), None)
            if schedule is None:
                logger.warning("Schedule not found", extra_data={"schedule_id": schedule_id})
                self._publish(lambda s: replace(s, is_loading=False, error=SCHEDULE_NOT_FOUND_MESSAGE))
                return

            driver = await self._resolve_driver(schedule)
            tps_by_id = self._index_stations(await self._load_stations())

            route = list(schedule.tps_route or [])
            tps_details = tuple(tps_by_id[t] for t in route if t in tps_by_id)
            route_steps = build_route_steps(
                schedule, tps_by_id, self._unknown_name, self._unknown_address
            )

            logger.info(
                "Route details loaded",
                extra_data={
                    "schedule_id": schedule_id,
                    "route_stops": len(route),
                    "resolved_tps": len(tps_details),
                    "completed_steps": sum(1 for s in route_steps if s.is_completed),
                    "driver_resolved": driver is not None,
                }
            )

            self._publish(lambda s: replace(
                s,
                is_loading=False,
                schedule=schedule,
                driver=driver,
                tps_details=tps_details,
                route_steps=route_steps,
                error=None,
            ))
        except Exception as e:
            logger.error(
                "Error loading route details",
                extra_data={"schedule_id": schedule_id, "error": str(e)},
                exc_info=True
            )
            message = LOAD_FAILED_MESSAGE.format(detail=e)
            self._publish(lambda s: replace(s, is_loading=False, error=message))

    async def _resolve_driver(self, schedule: Schedule) -> Optional[User]:
        if not is_driver_assigned(schedule.driver_id):
            return None

        users = (await self._users.get_all_users()).get_or_none()
        if users is None:
            logger.warning(
                "User lookup failed, driver left unresolved",
                extra_data={"schedule_id": schedule.id, "driver_id": schedule.driver_id}
            )
            return None

        driver = next((u for u in users if u.id == schedule.driver_id), None)
        if driver is None:
            logger.warning(
                "Assigned driver not found",
                extra_data={"schedule_id": schedule.id, "driver_id": schedule.driver_id}
            )
        return driver

    async def _load_stations(self) -> Sequence[TPS]:
        result = await self._stations.get_all_tps()
        if result.is_failure:
            logger.warning(
                "TPS lookup failed, using placeholders",
                extra_data={"error": str(result.error)}
            )
        return result.get_or_default([])

    @staticmethod
    def _index_stations(stations: Sequence[TPS]) -> dict[str, TPS]:
        tps_by_id: dict[str, TPS] = {}
        for tps in stations:
            tps_by_id.setdefault(tps.id, tps)
        return tps_by_id

