"""
TPS Service - transfer point station management

Reads fail soft and leave the shared session untouched (no rollback), so
instances already loaded by the caller stay usable.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.db.database import now_millis
from wasteroute.db.models.tps import TPS, TPSStatus
from wasteroute.db.models.user import User, UserRole
from wasteroute.core.exceptions import InvalidUserRoleError, TPSNotFoundError, UserNotFoundError
from wasteroute.core.logging import get_logger
from wasteroute.core.result import Result

logger = get_logger(__name__)


class TPSService:
    """Station lookups and officer-facing updates"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all_tps(self) -> Result[List[TPS]]:
        """All stations ordered by name"""
        try:
            result = await self.db.execute(select(TPS).order_by(TPS.name, TPS.id))
            stations = list(result.scalars().all())
        except Exception as e:
            logger.warning(
                "Failed to load TPS locations",
                extra_data={"error": str(e)},
                exc_info=True
            )
            return Result.failure(e)

        logger.debug("Loaded TPS locations", extra_data={"count": len(stations)})
        return Result.success(stations)

    async def get_tps_by_id(self, tps_id: str) -> Result[Optional[TPS]]:
        try:
            return Result.success(await self.db.get(TPS, tps_id))
        except Exception as e:
            logger.warning(
                "Failed to load TPS",
                extra_data={"tps_id": tps_id, "error": str(e)},
                exc_info=True
            )
            return Result.failure(e)

    async def create_tps(
        self,
        name: str,
        address: str,
        latitude: float,
        longitude: float,
        status: TPSStatus = TPSStatus.NOT_FULL,
        assigned_officer_id: str | None = None,
    ) -> TPS:
        tps = TPS(
            name=name,
            address=address,
            latitude=latitude,
            longitude=longitude,
            status=status,
            assigned_officer_id=assigned_officer_id,
        )
        self.db.add(tps)
        await self.db.commit()
        await self.db.refresh(tps)

        logger.info("TPS created", extra_data={"tps_id": tps.id, "name": name})
        return tps

    async def _require_tps(self, tps_id: str) -> TPS:
        tps = await self.db.get(TPS, tps_id)
        if tps is None:
            logger.warning("TPS not found", extra_data={"tps_id": tps_id})
            raise TPSNotFoundError(tps_id)
        return tps

    async def update_tps_status(self, tps_id: str, status: TPSStatus) -> TPS:
        tps = await self._require_tps(tps_id)
        tps.status = status
        tps.last_updated = now_millis()
        await self.db.commit()
        await self.db.refresh(tps)

        logger.info(
            "TPS status updated",
            extra_data={"tps_id": tps_id, "status": status.value}
        )
        return tps

    async def assign_officer(self, tps_id: str, officer_id: str) -> TPS:
        """Assign a TPS officer to a station"""
        tps = await self._require_tps(tps_id)

        officer = await self.db.get(User, officer_id)
        if officer is None:
            raise UserNotFoundError(officer_id)
        if officer.role != UserRole.TPS_OFFICER:
            raise InvalidUserRoleError(officer_id, officer.role.value, UserRole.TPS_OFFICER.value)

        tps.assigned_officer_id = officer_id
        await self.db.commit()
        await self.db.refresh(tps)

        logger.info(
            "Officer assigned to TPS",
            extra_data={"tps_id": tps_id, "officer_id": officer_id}
        )
        return tps
