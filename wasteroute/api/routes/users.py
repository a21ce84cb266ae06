"""
User API Routes - user management for the admin console

All endpoints require the admin API key (X-Admin-API-Key).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.api.dependencies.admin_auth import require_admin_api_key
from wasteroute.core.exceptions import UserNotFoundError
from wasteroute.core.logging import get_logger
from wasteroute.core.validation import EmailValidator, NameValidator, TextSanitizer
from wasteroute.db.database import get_db
from wasteroute.db.models.user import UserRole
from wasteroute.domain.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class UserCreate(BaseModel):
    """Schema for creating a new user with validation"""
    name: str
    role: UserRole = UserRole.TPS_OFFICER
    email: Optional[str] = None
    approved: bool = False

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v: str | UserRole) -> UserRole:
        """Accept enum values in either 'DRIVER' or 'driver' form"""
        if isinstance(v, UserRole):
            return v
        if isinstance(v, str):
            value = v.strip().lower()
            try:
                return UserRole(value)
            except ValueError as e:
                raise ValueError("Invalid role value") from e
        raise ValueError("Invalid role value")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        is_valid, error = NameValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return TextSanitizer.sanitize(v.strip(), max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not EmailValidator.validate(v):
            raise ValueError("Invalid email address")
        return EmailValidator.normalize(v)


class UserResponse(BaseModel):
    id: str
    name: str
    email: Optional[str]
    role: UserRole
    approved: bool
    created_at: int

    model_config = ConfigDict(from_attributes=True)


class ActionResponse(BaseModel):
    success: bool
    message: str


@router.get(
    "/",
    response_model=List[UserResponse],
    summary="List users",
    description="All users, newest first. Optionally filtered by role.",
)
async def list_users(
    role: Optional[UserRole] = None,
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    if role is not None:
        return await service.get_users_by_role(role)
    return (await service.get_all_users()).get_or_raise()


@router.get(
    "/pending",
    response_model=List[UserResponse],
    summary="Users awaiting approval",
)
async def list_pending_users(db: AsyncSession = Depends(get_db)):
    return await UserService(db).get_pending_users()


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by id",
    responses={200: {"description": "User found"}, 404: {"description": "User not found"}},
)
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    user = (await UserService(db).get_user_by_id(user_id)).get_or_raise()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    responses={
        201: {"description": "User created"},
        409: {"description": "User already exists"},
        422: {"description": "Request validation failed"},
    },
)
async def create_user(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await UserService(db).create_user(
        name=user_data.name,
        role=user_data.role,
        email=user_data.email,
        approved=user_data.approved,
    )


@router.post(
    "/{user_id}/approve",
    response_model=UserResponse,
    summary="Approve user",
    responses={200: {"description": "User approved"}, 404: {"description": "User not found"}},
)
async def approve_user(user_id: str, db: AsyncSession = Depends(get_db)):
    return await UserService(db).approve_user(user_id)


@router.post(
    "/{user_id}/reject",
    response_model=ActionResponse,
    summary="Reject a pending user",
    description="Deletes a user that has not been approved yet.",
    responses={
        200: {"description": "User rejected"},
        400: {"description": "User is already approved"},
        404: {"description": "User not found"},
    },
)
async def reject_user(user_id: str, db: AsyncSession = Depends(get_db)) -> ActionResponse:
    await UserService(db).reject_user(user_id)
    return ActionResponse(success=True, message="User rejected")


@router.delete(
    "/{user_id}",
    response_model=ActionResponse,
    summary="Delete user",
    responses={200: {"description": "User deleted"}, 404: {"description": "User not found"}},
)
async def delete_user(user_id: str, db: AsyncSession = Depends(get_db)) -> ActionResponse:
    await UserService(db).delete_user(user_id)
    return ActionResponse(success=True, message="User deleted")
