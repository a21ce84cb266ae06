"""
User Service - user management for the admin console

Bulk and single reads return a ``Result`` so that callers assembling views
can degrade gracefully when the user store is unavailable. The failure
branches never roll back: the session is shared with the caller and a
rollback would expire the instances it already holds. Mutations raise the
application exceptions the API layer renders.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.db.models.user import User, UserRole
from wasteroute.core.exceptions import (
    UserAlreadyApprovedError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from wasteroute.core.logging import get_logger
from wasteroute.core.result import Result

logger = get_logger(__name__)


class UserService:
    """User lookups and approval workflow"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all_users(self) -> Result[List[User]]:
        """All users, newest first"""
        try:
            result = await self.db.execute(
                select(User).order_by(User.created_at.desc(), User.id)
            )
            return Result.success(list(result.scalars().all()))
        except Exception as e:
            logger.warning(
                "Failed to load users",
                extra_data={"error": str(e)},
                exc_info=True
            )
            return Result.failure(e)

    async def get_user_by_id(self, user_id: str) -> Result[Optional[User]]:
        try:
            return Result.success(await self.db.get(User, user_id))
        except Exception as e:
            logger.warning(
                "Failed to load user",
                extra_data={"user_id": user_id, "error": str(e)},
                exc_info=True
            )
            return Result.failure(e)

    async def get_users_by_role(self, role: UserRole) -> List[User]:
        result = await self.db.execute(
            select(User)
            .where(User.role == role)
            .order_by(User.created_at.desc(), User.id)
        )
        return list(result.scalars().all())

    async def get_pending_users(self) -> List[User]:
        """Users waiting for admin approval, newest first"""
        result = await self.db.execute(
            select(User)
            .where(User.approved == False)  # noqa: E712
            .order_by(User.created_at.desc(), User.id)
        )
        return list(result.scalars().all())

    async def create_user(
        self,
        name: str,
        role: UserRole,
        email: str | None = None,
        user_id: str | None = None,
        approved: bool = False,
    ) -> User:
        user = User(name=name, role=role, email=email, approved=approved)
        if user_id:
            user.id = user_id

        try:
            async with self.db.begin_nested():
                self.db.add(user)
        except IntegrityError as e:
            raise UserAlreadyExistsError(user_id or email or name) from e

        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User created",
            extra_data={"user_id": user.id, "role": user.role.value}
        )
        return user

    async def _require_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def approve_user(self, user_id: str) -> User:
        """Approve a user. Approving an approved user is a no-op."""
        user = await self._require_user(user_id)
        if user.approved:
            logger.info("User already approved", extra_data={"user_id": user_id})
            return user

        user.approved = True
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User approved",
            extra_data={"user_id": user_id, "role": user.role.value}
        )
        return user

    async def reject_user(self, user_id: str) -> None:
        """Reject a pending sign-up by deleting it. Approved users cannot be rejected."""
        user = await self._require_user(user_id)
        if user.approved:
            raise UserAlreadyApprovedError(user_id)

        await self.db.delete(user)
        await self.db.commit()
        logger.info("User rejected", extra_data={"user_id": user_id})

    async def delete_user(self, user_id: str) -> None:
        user = await self._require_user(user_id)
        await self.db.delete(user)
        await self.db.commit()
        logger.info("User deleted", extra_data={"user_id": user_id})
