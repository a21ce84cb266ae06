"""
Driver Location API Routes - live positions of drivers on their routes

All endpoints require the admin API key (X-Admin-API-Key).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.api.dependencies.admin_auth import require_admin_api_key
from wasteroute.core.exceptions import DriverLocationNotFoundError
from wasteroute.core.validation import CoordinateValidator
from wasteroute.db.database import get_db
from wasteroute.domain.services.driver_location_service import DriverLocationService

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class DriverLocationUpdate(BaseModel):
    schedule_id: str = Field(..., min_length=1)
    latitude: float
    longitude: float
    speed: float = Field(default=0.0, ge=0)
    heading: float = Field(default=0.0, ge=0, le=360)
    timestamp: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_coordinates(self) -> "DriverLocationUpdate":
        is_valid, error = CoordinateValidator.validate(self.latitude, self.longitude)
        if not is_valid:
            raise ValueError(error)
        return self


class DriverLocationResponse(BaseModel):
    driver_id: str
    schedule_id: str
    latitude: float
    longitude: float
    timestamp: int
    speed: float
    heading: float

    model_config = ConfigDict(from_attributes=True)


class ActionResponse(BaseModel):
    success: bool
    message: str


@router.get(
    "/",
    response_model=List[DriverLocationResponse],
    summary="Active driver locations",
    description="Positions reported within DRIVER_LOCATION_ACTIVE_SECONDS, newest first.",
)
async def list_active_driver_locations(db: AsyncSession = Depends(get_db)):
    return await DriverLocationService(db).get_all_active_driver_locations()


@router.get(
    "/{driver_id}",
    response_model=DriverLocationResponse,
    summary="Get driver location",
    responses={200: {"description": "Location found"}, 404: {"description": "No location stored"}},
)
async def get_driver_location(driver_id: str, db: AsyncSession = Depends(get_db)):
    location = await DriverLocationService(db).get_driver_location(driver_id)
    if location is None:
        raise DriverLocationNotFoundError(driver_id)
    return location


@router.put(
    "/{driver_id}",
    response_model=DriverLocationResponse,
    summary="Report driver location",
    description="Overwrites the driver's previous position.",
    responses={
        200: {"description": "Location stored"},
        404: {"description": "Schedule not found"},
        422: {"description": "Invalid coordinates"},
    },
)
async def update_driver_location(
    driver_id: str,
    data: DriverLocationUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await DriverLocationService(db).update_driver_location(driver_id, **data.model_dump())


@router.delete(
    "/{driver_id}",
    response_model=ActionResponse,
    summary="Clear driver location",
    responses={200: {"description": "Location cleared"}, 404: {"description": "No location stored"}},
)
async def clear_driver_location(driver_id: str, db: AsyncSession = Depends(get_db)) -> ActionResponse:
    if not await DriverLocationService(db).clear_driver_location(driver_id):
        raise DriverLocationNotFoundError(driver_id)
    return ActionResponse(success=True, message="Driver location cleared")
