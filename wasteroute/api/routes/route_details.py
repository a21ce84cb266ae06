"""
Route Details API Routes - assembled route view and export

Each request builds a ``RouteDetailsViewModel`` over the request's session,
runs one load to completion and renders the resulting snapshot.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.api.dependencies.admin_auth import require_admin_api_key
from wasteroute.api.routes.schedules import ScheduleResponse
from wasteroute.api.routes.tps import TPSResponse
from wasteroute.api.routes.users import UserResponse
from wasteroute.core.exceptions import RouteDetailsLoadError, ScheduleNotFoundError
from wasteroute.core.logging import get_logger
from wasteroute.db.database import get_db
from wasteroute.domain.services.export_service import generate_route_details_excel
from wasteroute.domain.services.schedule_service import ScheduleService
from wasteroute.domain.services.tps_service import TPSService
from wasteroute.domain.services.user_service import UserService
from wasteroute.viewmodels.route_details import (
    SCHEDULE_NOT_FOUND_MESSAGE,
    RouteDetailsUiState,
    RouteDetailsViewModel,
)

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class RouteStepResponse(BaseModel):
    step_number: int
    tps_id: str
    tps_name: str
    tps_address: str
    is_completed: bool
    completed_at: Optional[int]
    proof_photo_url: Optional[str]
    notes: str
    has_issue: bool
    estimated_arrival_time: Optional[int]
    actual_arrival_time: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class RouteProgressResponse(BaseModel):
    total_steps: int
    completed_steps: int
    steps_with_photos: int
    steps_with_issues: int
    completion_ratio: float

    model_config = ConfigDict(from_attributes=True)


class RouteDetailsResponse(BaseModel):
    schedule: ScheduleResponse
    driver: Optional[UserResponse]
    tps_details: List[TPSResponse]
    route_steps: List[RouteStepResponse]
    progress: RouteProgressResponse

    model_config = ConfigDict(from_attributes=True)


async def load_route_details_state(db: AsyncSession, schedule_id: str) -> RouteDetailsUiState:
    """
    Run a single route-details load and return its final snapshot.

    Raises:
        ScheduleNotFoundError: the schedule does not exist
        RouteDetailsLoadError: the load failed unexpectedly
    """
    view_model = RouteDetailsViewModel(
        ScheduleService(db),
        UserService(db),
        TPSService(db),
    )
    try:
        await view_model.load_route_details(schedule_id)
        state = view_model.state
    finally:
        view_model.dispose()

    if state.error == SCHEDULE_NOT_FOUND_MESSAGE:
        raise ScheduleNotFoundError(schedule_id)
    if state.error is not None:
        raise RouteDetailsLoadError(schedule_id, state.error)
    return state


@router.get(
    "/{schedule_id}",
    response_model=RouteDetailsResponse,
    summary="Route details",
    description=(
        "The schedule with its driver, the stations on the route and one step "
        "per planned stop merged with its completion record."
    ),
    responses={
        200: {"description": "Route details"},
        401: {"description": "Missing API key"},
        403: {"description": "Invalid API key"},
        404: {"description": "Schedule not found"},
        500: {"description": "Route details could not be loaded"},
    },
)
async def get_route_details(
    schedule_id: str,
    db: AsyncSession = Depends(get_db),
) -> RouteDetailsResponse:
    state = await load_route_details_state(db, schedule_id)
    return RouteDetailsResponse.model_validate(state)


@router.get(
    "/{schedule_id}/export",
    summary="Export route details to Excel",
    responses={
        200: {
            "description": "XLSX workbook",
            "content": {
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": {}
            },
        },
        404: {"description": "Schedule not found"},
    },
)
async def export_route_details(
    schedule_id: str,
    db: AsyncSession = Depends(get_db),
) -> Response:
    state = await load_route_details_state(db, schedule_id)
    content = generate_route_details_excel(state)

    logger.info(
        "Route details exported",
        extra_data={"schedule_id": schedule_id, "steps": len(state.route_steps)}
    )
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="route_{schedule_id}.xlsx"'},
    )
