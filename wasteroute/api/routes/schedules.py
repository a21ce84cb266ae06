"""
Schedule API Routes - collection schedules and stop completions

All endpoints require the admin API key (X-Admin-API-Key).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.api.dependencies.admin_auth import require_admin_api_key
from wasteroute.core.exceptions import ScheduleNotFoundError
from wasteroute.core.logging import get_logger
from wasteroute.core.validation import TextSanitizer
from wasteroute.db.database import get_db
from wasteroute.db.models.schedule import (
    RecurrenceType,
    ScheduleGenerationType,
    SchedulePriority,
    ScheduleStatus,
)
from wasteroute.domain.services.schedule_service import ScheduleService

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class ScheduleCreate(BaseModel):
    tps_route: List[str] = Field(..., min_length=1)
    driver_id: str = ""
    date: Optional[int] = None
    generation_type: ScheduleGenerationType = ScheduleGenerationType.MANUAL
    estimated_duration: Optional[int] = Field(default=None, ge=0)
    total_distance: Optional[float] = Field(default=None, ge=0)


class ScheduleStatusUpdate(BaseModel):
    status: ScheduleStatus


class DriverAssignment(BaseModel):
    driver_id: str = Field(..., min_length=1)
    assigned_date: Optional[int] = Field(default=None, ge=0)
    is_recurring: bool = False

    @model_validator(mode="after")
    def recurrence_needs_date(self) -> "DriverAssignment":
        if self.is_recurring and self.assigned_date is None:
            raise ValueError("A recurring assignment needs an assigned_date")
        return self


class StopCompletionUpdate(BaseModel):
    tps_id: str = Field(..., min_length=1)
    completed_at: Optional[int] = None
    proof_photo_url: Optional[str] = None
    notes: str = ""
    has_issue: bool = False
    driver_latitude: Optional[float] = None
    driver_longitude: Optional[float] = None

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v: str) -> str:
        return TextSanitizer.sanitize(v.strip(), max_length=2000)


class StopCompletionResponse(BaseModel):
    tps_id: str
    completed_at: int
    proof_photo_url: Optional[str]
    notes: str
    has_issue: bool
    driver_latitude: Optional[float]
    driver_longitude: Optional[float]

    model_config = ConfigDict(from_attributes=True)


class ScheduleResponse(BaseModel):
    id: str
    driver_id: str
    tps_route: List[str]
    status: ScheduleStatus
    generation_type: ScheduleGenerationType
    priority: SchedulePriority
    is_optimized: bool
    estimated_duration: Optional[int]
    total_distance: Optional[float]
    date: Optional[int]
    assigned_date: Optional[int]
    is_recurring: bool
    recurrence_type: RecurrenceType
    next_occurrence: Optional[int]
    created_at: int
    generated_at: Optional[int]
    approved_at: Optional[int]
    started_at: Optional[int]
    completed_at: Optional[int]
    route_completions: List[StopCompletionResponse] = []

    model_config = ConfigDict(from_attributes=True)


class ScheduleStatsResponse(BaseModel):
    total_schedules: int
    pending_schedules: int
    pending_approval_schedules: int
    assigned_schedules: int
    active_schedules: int
    completed_schedules: int
    cancelled_schedules: int
    completed_today: int
    optimized_schedules: int
    total_distance: float
    average_distance: float
    average_stops_per_route: float

    model_config = ConfigDict(from_attributes=True)


class ActionResponse(BaseModel):
    success: bool
    message: str


class CanStartResponse(BaseModel):
    schedule_id: str
    can_start: bool


@router.get(
    "/",
    response_model=List[ScheduleResponse],
    summary="List schedules",
    description="Schedules newest first, optionally filtered by status or driver.",
)
async def list_schedules(
    status: Optional[ScheduleStatus] = None,
    driver_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    service = ScheduleService(db)
    if status is not None:
        schedules = await service.get_schedules_by_status(status)
    elif driver_id is not None:
        schedules = await service.get_schedules_by_driver(driver_id)
    else:
        schedules = await service.get_all_schedules()

    if status is not None and driver_id is not None:
        schedules = [s for s in schedules if s.driver_id == driver_id]
    return schedules


@router.post(
    "/",
    response_model=ScheduleResponse,
    status_code=201,
    summary="Create schedule",
    description="Priority is derived from the number of stops on the route.",
    responses={
        201: {"description": "Schedule created"},
        400: {"description": "Invalid route or driver"},
        404: {"description": "Driver not found"},
    },
)
async def create_schedule(data: ScheduleCreate, db: AsyncSession = Depends(get_db)):
    return await ScheduleService(db).create_schedule(**data.model_dump())


@router.get(
    "/stats",
    response_model=ScheduleStatsResponse,
    summary="Schedule statistics",
)
async def get_schedule_stats(db: AsyncSession = Depends(get_db)):
    return await ScheduleService(db).get_schedule_stats()


@router.get(
    "/pending-approval",
    response_model=List[ScheduleResponse],
    summary="Schedules awaiting approval",
    description="Generated routes an admin still has to approve, newest first.",
)
async def list_pending_approval_schedules(db: AsyncSession = Depends(get_db)):
    return await ScheduleService(db).get_pending_approval_schedules()


@router.get(
    "/optimized",
    response_model=List[ScheduleResponse],
    summary="Generated schedules",
    description="Every AI-generated route regardless of status.",
)
async def list_optimized_schedules(db: AsyncSession = Depends(get_db)):
    return await ScheduleService(db).get_optimized_schedules()


@router.get(
    "/{schedule_id}",
    response_model=ScheduleResponse,
    summary="Get schedule",
    responses={200: {"description": "Schedule found"}, 404: {"description": "Schedule not found"}},
)
async def get_schedule(schedule_id: str, db: AsyncSession = Depends(get_db)):
    schedule = await ScheduleService(db).get_schedule_by_id(schedule_id)
    if schedule is None:
        raise ScheduleNotFoundError(schedule_id)
    return schedule


@router.get(
    "/{schedule_id}/can-start",
    response_model=CanStartResponse,
    summary="Check whether the driver may start",
    description="False until the UTC day of the assigned date (or planned date) arrives.",
    responses={200: {"description": "Check done"}, 404: {"description": "Schedule not found"}},
)
async def can_start_schedule(schedule_id: str, db: AsyncSession = Depends(get_db)) -> CanStartResponse:
    allowed = await ScheduleService(db).can_driver_start_schedule(schedule_id)
    return CanStartResponse(schedule_id=schedule_id, can_start=allowed)


@router.patch(
    "/{schedule_id}/status",
    response_model=ScheduleResponse,
    summary="Update schedule status",
    responses={
        200: {"description": "Status updated"},
        404: {"description": "Schedule not found"},
        409: {"description": "Start requested before the collection day"},
    },
)
async def update_schedule_status(
    schedule_id: str,
    data: ScheduleStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService(db).update_schedule_status(schedule_id, data.status)


@router.post(
    "/{schedule_id}/assign",
    response_model=ScheduleResponse,
    summary="Assign driver",
    description="With an assigned_date the assignment is dated and may repeat weekly.",
    responses={
        200: {"description": "Driver assigned"},
        400: {"description": "User is not a driver"},
        404: {"description": "Schedule or driver not found"},
    },
)
async def assign_driver(
    schedule_id: str,
    data: DriverAssignment,
    db: AsyncSession = Depends(get_db),
):
    service = ScheduleService(db)
    if data.assigned_date is None:
        return await service.assign_driver(schedule_id, data.driver_id)
    return await service.assign_driver_with_date(
        schedule_id, data.driver_id, data.assigned_date, data.is_recurring
    )


@router.post(
    "/{schedule_id}/approve",
    response_model=ScheduleResponse,
    summary="Approve generated schedule",
    responses={
        200: {"description": "Schedule approved"},
        400: {"description": "Schedule is not awaiting approval"},
        404: {"description": "Schedule not found"},
    },
)
async def approve_schedule(schedule_id: str, db: AsyncSession = Depends(get_db)):
    return await ScheduleService(db).approve_schedule(schedule_id)


@router.put(
    "/{schedule_id}/completions",
    response_model=StopCompletionResponse,
    summary="Record stop completion",
    description="Creates or overwrites the completion record of one stop on the route.",
    responses={
        200: {"description": "Completion recorded"},
        400: {"description": "Station is not on this route"},
        404: {"description": "Schedule not found"},
    },
)
async def update_stop_completion(
    schedule_id: str,
    data: StopCompletionUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService(db).update_stop_completion(schedule_id, **data.model_dump())


@router.delete(
    "/{schedule_id}",
    response_model=ActionResponse,
    summary="Delete schedule",
    responses={200: {"description": "Schedule deleted"}, 404: {"description": "Schedule not found"}},
)
async def delete_schedule(schedule_id: str, db: AsyncSession = Depends(get_db)) -> ActionResponse:
    await ScheduleService(db).delete_schedule(schedule_id)
    return ActionResponse(success=True, message="Schedule deleted")
