"""
TPS API Routes - transfer point station management

All endpoints require the admin API key (X-Admin-API-Key).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.api.dependencies.admin_auth import require_admin_api_key
from wasteroute.core.exceptions import TPSNotFoundError
from wasteroute.core.logging import get_logger
from wasteroute.core.validation import AddressValidator, CoordinateValidator, TextSanitizer
from wasteroute.db.database import get_db
from wasteroute.db.models.tps import TPSStatus
from wasteroute.domain.services.tps_service import TPSService

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class TPSCreate(BaseModel):
    name: str
    address: str
    latitude: float
    longitude: float
    status: TPSStatus = TPSStatus.NOT_FULL
    assigned_officer_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("TPS name must be at least 2 characters")
        return TextSanitizer.sanitize(v, max_length=200)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        is_valid, error = AddressValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return TextSanitizer.sanitize(v.strip(), max_length=300)

    @model_validator(mode="after")
    def validate_coordinates(self) -> "TPSCreate":
        is_valid, error = CoordinateValidator.validate(self.latitude, self.longitude)
        if not is_valid:
            raise ValueError(error)
        return self


class TPSStatusUpdate(BaseModel):
    status: TPSStatus


class TPSOfficerUpdate(BaseModel):
    officer_id: str


class TPSResponse(BaseModel):
    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    status: TPSStatus
    assigned_officer_id: Optional[str]
    last_updated: int

    model_config = ConfigDict(from_attributes=True)


@router.get(
    "/",
    response_model=List[TPSResponse],
    summary="List stations",
    description="All transfer point stations ordered by name.",
)
async def list_tps(db: AsyncSession = Depends(get_db)):
    return (await TPSService(db).get_all_tps()).get_or_raise()


@router.post(
    "/",
    response_model=TPSResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create station",
)
async def create_tps(data: TPSCreate, db: AsyncSession = Depends(get_db)):
    return await TPSService(db).create_tps(**data.model_dump())


@router.get(
    "/{tps_id}",
    response_model=TPSResponse,
    summary="Get station",
    responses={200: {"description": "Station found"}, 404: {"description": "Station not found"}},
)
async def get_tps(tps_id: str, db: AsyncSession = Depends(get_db)):
    tps = (await TPSService(db).get_tps_by_id(tps_id)).get_or_raise()
    if tps is None:
        raise TPSNotFoundError(tps_id)
    return tps


@router.patch(
    "/{tps_id}/status",
    response_model=TPSResponse,
    summary="Update station fill status",
)
async def update_tps_status(
    tps_id: str,
    data: TPSStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await TPSService(db).update_tps_status(tps_id, data.status)


@router.patch(
    "/{tps_id}/officer",
    response_model=TPSResponse,
    summary="Assign station officer",
    responses={
        200: {"description": "Officer assigned"},
        400: {"description": "User is not a TPS officer"},
        404: {"description": "Station or user not found"},
    },
)
async def assign_tps_officer(
    tps_id: str,
    data: TPSOfficerUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await TPSService(db).assign_officer(tps_id, data.officer_id)
