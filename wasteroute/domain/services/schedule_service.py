"""
Schedule Service - collection schedules and per-stop completion records

Unlike the user and station services, bulk schedule reads raise on failure:
nothing useful can be shown about a route without its schedule.
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.core.config import settings
from wasteroute.core.exceptions import (
    InvalidUserRoleError,
    ScheduleNotFoundError,
    ScheduleNotStartableError,
    ScheduleStatusError,
    StopNotOnRouteError,
    UserNotFoundError,
    ValidationException,
)
from wasteroute.core.logging import get_logger, log_async_operation
from wasteroute.db.database import now_millis
from wasteroute.db.models.route_stop_completion import RouteStopCompletion
from wasteroute.db.models.schedule import (
    Schedule,
    RecurrenceType,
    ScheduleGenerationType,
    SchedulePriority,
    ScheduleStatus,
)
from wasteroute.db.models.user import User, UserRole
from wasteroute.db.queries import schedule_with_completions

logger = get_logger(__name__)

_DAY_MILLIS = 24 * 60 * 60 * 1000
_WEEK_MILLIS = 7 * _DAY_MILLIS


def determine_priority(stop_count: int) -> SchedulePriority:
    """Longer routes get collected first"""
    if stop_count >= 8:
        return SchedulePriority.URGENT
    if stop_count >= 5:
        return SchedulePriority.HIGH
    if stop_count >= 3:
        return SchedulePriority.NORMAL
    return SchedulePriority.LOW


def start_of_day(millis: int) -> int:
    """UTC midnight of the day containing ``millis``"""
    return millis - (millis % _DAY_MILLIS)


def is_driver_assigned(driver_id: str | None) -> bool:
    """True when ``driver_id`` names a driver rather than the empty/unassigned sentinel"""
    return bool(driver_id) and driver_id != settings.UNASSIGNED_DRIVER_ID


def can_start(schedule: Schedule, now: int) -> bool:
    """A schedule may start on or after the UTC day of its start date"""
    start = schedule.start_date
    if start is None:
        return True
    return start_of_day(now) >= start_of_day(start)


@dataclass
class ScheduleStats:
    total_schedules: int = 0
    pending_schedules: int = 0
    pending_approval_schedules: int = 0
    assigned_schedules: int = 0
    active_schedules: int = 0
    completed_schedules: int = 0
    cancelled_schedules: int = 0
    completed_today: int = 0
    optimized_schedules: int = 0
    total_distance: float = 0.0
    average_distance: float = 0.0
    average_stops_per_route: float = 0.0


class ScheduleService:
    """Schedule reads, lifecycle transitions and stop completions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _ordered_query(self):
        return (
            select(Schedule)
            .options(*schedule_with_completions())
            .order_by(
                func.coalesce(Schedule.generated_at, Schedule.created_at).desc(),
                Schedule.id,
            )
        )

    @log_async_operation("load all schedules")
    async def get_all_schedules(self) -> List[Schedule]:
        """All schedules, newest first. Raises on storage failure."""
        result = await self.db.execute(self._ordered_query())
        return list(result.scalars().all())

    async def get_schedule_by_id(self, schedule_id: str) -> Optional[Schedule]:
        result = await self.db.execute(
            select(Schedule)
            .where(Schedule.id == schedule_id)
            .options(*schedule_with_completions())
        )
        return result.scalar_one_or_none()

    async def get_schedules_by_status(self, status: ScheduleStatus) -> List[Schedule]:
        result = await self.db.execute(self._ordered_query().where(Schedule.status == status))
        return list(result.scalars().all())

    async def get_schedules_by_driver(self, driver_id: str) -> List[Schedule]:
        result = await self.db.execute(self._ordered_query().where(Schedule.driver_id == driver_id))
        return list(result.scalars().all())

    async def get_schedules_by_type(self, generation_type: ScheduleGenerationType) -> List[Schedule]:
        result = await self.db.execute(
            self._ordered_query().where(Schedule.generation_type == generation_type)
        )
        return list(result.scalars().all())

    async def get_pending_approval_schedules(self) -> List[Schedule]:
        """Generated routes waiting for an admin to approve them"""
        schedules = await self.get_schedules_by_status(ScheduleStatus.PENDING_APPROVAL)
        logger.debug("Loaded pending approval schedules", extra_data={"count": len(schedules)})
        return schedules

    async def get_optimized_schedules(self) -> List[Schedule]:
        """Every AI-generated route, whatever its status"""
        return await self.get_schedules_by_type(ScheduleGenerationType.AI_GENERATED)

    async def _require_schedule(self, schedule_id: str) -> Schedule:
        schedule = await self.get_schedule_by_id(schedule_id)
        if schedule is None:
            logger.warning("Schedule not found", extra_data={"schedule_id": schedule_id})
            raise ScheduleNotFoundError(schedule_id)
        return schedule

    async def _require_driver(self, driver_id: str) -> User:
        driver = await self.db.get(User, driver_id)
        if driver is None:
            raise UserNotFoundError(driver_id)
        if driver.role != UserRole.DRIVER:
            raise InvalidUserRoleError(driver_id, driver.role.value, UserRole.DRIVER.value)
        return driver

    async def create_schedule(
        self,
        tps_route: List[str],
        driver_id: str = "",
        date: int | None = None,
        generation_type: ScheduleGenerationType = ScheduleGenerationType.MANUAL,
        estimated_duration: int | None = None,
        total_distance: float | None = None,
    ) -> Schedule:
        """
        Create a schedule. Priority follows the stop count.

        AI-generated routes wait for admin approval; manual routes start
        PENDING, or ASSIGNED when a driver is given.
        """
        if not tps_route:
            raise ValidationException("A schedule needs at least one stop", field="tps_route")
        if len(set(tps_route)) != len(tps_route):
            raise ValidationException("A route may visit each TPS only once", field="tps_route")

        if is_driver_assigned(driver_id):
            await self._require_driver(driver_id)

        is_generated = generation_type == ScheduleGenerationType.AI_GENERATED
        if is_generated:
            status = ScheduleStatus.PENDING_APPROVAL
        elif is_driver_assigned(driver_id):
            status = ScheduleStatus.ASSIGNED
        else:
            status = ScheduleStatus.PENDING

        schedule = Schedule(
            driver_id=driver_id,
            tps_route=list(tps_route),
            route_completions=[],
            status=status,
            generation_type=generation_type,
            priority=determine_priority(len(tps_route)),
            is_optimized=is_generated,
            generated_at=now_millis() if is_generated else None,
            estimated_duration=estimated_duration,
            total_distance=total_distance,
            date=date,
        )
        self.db.add(schedule)
        await self.db.commit()

        logger.info(
            "Schedule created",
            extra_data={
                "schedule_id": schedule.id,
                "stops": len(tps_route),
                "status": status.value,
                "priority": schedule.priority.value,
            }
        )
        return await self._require_schedule(schedule.id)

    async def update_schedule_status(self, schedule_id: str, status: ScheduleStatus) -> Schedule:
        """
        Move a schedule to ``status``.

        Raises:
            ScheduleNotStartableError: IN_PROGRESS requested before the start date
        """
        schedule = await self._require_schedule(schedule_id)
        if status == ScheduleStatus.IN_PROGRESS and not can_start(schedule, now_millis()):
            logger.warning(
                "Schedule start refused before its collection day",
                extra_data={"schedule_id": schedule_id, "start_date": schedule.start_date}
            )
            raise ScheduleNotStartableError(schedule_id, schedule.start_date)

        schedule.status = status
        if status == ScheduleStatus.IN_PROGRESS:
            schedule.started_at = now_millis()
        elif status == ScheduleStatus.COMPLETED:
            schedule.completed_at = now_millis()
        await self.db.commit()

        logger.info(
            "Schedule status updated",
            extra_data={"schedule_id": schedule_id, "status": status.value}
        )
        return schedule

    async def assign_driver(self, schedule_id: str, driver_id: str) -> Schedule:
        schedule = await self._require_schedule(schedule_id)
        await self._require_driver(driver_id)

        schedule.driver_id = driver_id
        schedule.status = ScheduleStatus.ASSIGNED
        await self.db.commit()

        logger.info(
            "Driver assigned to schedule",
            extra_data={"schedule_id": schedule_id, "driver_id": driver_id}
        )
        return schedule

    async def assign_driver_with_date(
        self,
        schedule_id: str,
        driver_id: str,
        assigned_date: int,
        is_recurring: bool = False,
    ) -> Schedule:
        """
        Assign a driver for a given collection day.

        A recurring assignment repeats weekly; ``next_occurrence`` is the same
        time one week later. A one-off assignment clears any recurrence.
        """
        schedule = await self._require_schedule(schedule_id)
        await self._require_driver(driver_id)

        schedule.driver_id = driver_id
        schedule.status = ScheduleStatus.ASSIGNED
        schedule.assigned_date = assigned_date
        schedule.is_recurring = is_recurring
        if is_recurring:
            schedule.recurrence_type = RecurrenceType.WEEKLY
            schedule.next_occurrence = assigned_date + _WEEK_MILLIS
        else:
            schedule.recurrence_type = RecurrenceType.NONE
            schedule.next_occurrence = None
        await self.db.commit()

        logger.info(
            "Driver assigned to schedule with date",
            extra_data={
                "schedule_id": schedule_id,
                "driver_id": driver_id,
                "assigned_date": assigned_date,
                "recurrence": schedule.recurrence_type.value,
            }
        )
        return schedule

    async def can_driver_start_schedule(self, schedule_id: str, now: int | None = None) -> bool:
        """True once the schedule's start day has arrived (UTC), or when it has none"""
        schedule = await self._require_schedule(schedule_id)
        return can_start(schedule, now if now is not None else now_millis())

    async def approve_schedule(self, schedule_id: str) -> Schedule:
        """Approve a generated schedule that is waiting for review"""
        schedule = await self._require_schedule(schedule_id)
        if schedule.status != ScheduleStatus.PENDING_APPROVAL:
            raise ScheduleStatusError(
                schedule_id, schedule.status.value, ScheduleStatus.PENDING_APPROVAL.value
            )

        schedule.status = ScheduleStatus.APPROVED
        schedule.approved_at = now_millis()
        await self.db.commit()

        logger.info("Schedule approved", extra_data={"schedule_id": schedule_id})
        return schedule

    async def update_stop_completion(
        self,
        schedule_id: str,
        tps_id: str,
        completed_at: int | None = None,
        proof_photo_url: str | None = None,
        notes: str = "",
        has_issue: bool = False,
        driver_latitude: float | None = None,
        driver_longitude: float | None = None,
    ) -> RouteStopCompletion:
        """
        Record (or overwrite) the completion of one stop on a schedule.

        Raises:
            ScheduleNotFoundError: unknown schedule
            StopNotOnRouteError: ``tps_id`` is not part of the route
        """
        schedule = await self._require_schedule(schedule_id)
        if tps_id not in (schedule.tps_route or []):
            raise StopNotOnRouteError(schedule_id, tps_id)

        completion = next(
            (c for c in schedule.route_completions if c.tps_id == tps_id),
            None
        )
        is_new = completion is None
        if is_new:
            completion = RouteStopCompletion(tps_id=tps_id)
            schedule.route_completions.append(completion)

        completion.completed_at = completed_at if completed_at is not None else now_millis()
        completion.proof_photo_url = proof_photo_url
        completion.notes = notes
        completion.has_issue = has_issue
        completion.driver_latitude = driver_latitude
        completion.driver_longitude = driver_longitude

        await self.db.commit()

        logger.info(
            "Stop completion recorded",
            extra_data={
                "schedule_id": schedule_id,
                "tps_id": tps_id,
                "created": is_new,
                "has_issue": has_issue,
            }
        )
        return completion

    async def delete_schedule(self, schedule_id: str) -> None:
        schedule = await self._require_schedule(schedule_id)
        await self.db.delete(schedule)
        await self.db.commit()
        logger.info("Schedule deleted", extra_data={"schedule_id": schedule_id})

    async def get_schedule_stats(self, now: int | None = None) -> ScheduleStats:
        """Counts per status plus distance/stop averages over every schedule"""
        schedules = await self.get_all_schedules()
        now = now if now is not None else now_millis()
        today_start = start_of_day(now)
        today_end = today_start + _DAY_MILLIS

        def count(status: ScheduleStatus) -> int:
            return sum(1 for s in schedules if s.status == status)

        distances = [s.total_distance for s in schedules if s.total_distance is not None]
        total_stops = sum(len(s.tps_route or []) for s in schedules)

        return ScheduleStats(
            total_schedules=len(schedules),
            pending_schedules=count(ScheduleStatus.PENDING),
            pending_approval_schedules=count(ScheduleStatus.PENDING_APPROVAL),
            assigned_schedules=count(ScheduleStatus.ASSIGNED),
            active_schedules=count(ScheduleStatus.IN_PROGRESS),
            completed_schedules=count(ScheduleStatus.COMPLETED),
            cancelled_schedules=count(ScheduleStatus.CANCELLED),
            completed_today=sum(
                1 for s in schedules
                if s.status == ScheduleStatus.COMPLETED
                and s.completed_at is not None
                and today_start <= s.completed_at < today_end
            ),
            optimized_schedules=sum(1 for s in schedules if s.is_optimized),
            total_distance=sum(distances),
            average_distance=sum(distances) / len(distances) if distances else 0.0,
            average_stops_per_route=total_stops / len(schedules) if schedules else 0.0,
        )
