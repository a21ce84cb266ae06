"""
Driver Location Service - last known position of drivers on their routes

Each driver has at most one location row. A report overwrites the previous
one; a location counts as active while it is younger than
``DRIVER_LOCATION_ACTIVE_SECONDS``.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wasteroute.core.config import settings
from wasteroute.core.exceptions import ScheduleNotFoundError
from wasteroute.core.logging import get_logger
from wasteroute.db.database import now_millis
from wasteroute.db.models.driver_location import DriverLocation
from wasteroute.db.models.schedule import Schedule

logger = get_logger(__name__)


class DriverLocationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_driver_location(
        self,
        driver_id: str,
        schedule_id: str,
        latitude: float,
        longitude: float,
        speed: float = 0.0,
        heading: float = 0.0,
        timestamp: int | None = None,
    ) -> DriverLocation:
        """
        Store the latest position of ``driver_id`` on ``schedule_id``.

        Raises:
            ScheduleNotFoundError: the schedule does not exist
        """
        if await self.db.get(Schedule, schedule_id) is None:
            raise ScheduleNotFoundError(schedule_id)

        location = await self.db.get(DriverLocation, driver_id)
        if location is None:
            location = DriverLocation(driver_id=driver_id)
            self.db.add(location)

        location.schedule_id = schedule_id
        location.latitude = latitude
        location.longitude = longitude
        location.speed = speed
        location.heading = heading
        location.timestamp = timestamp if timestamp is not None else now_millis()
        await self.db.commit()

        logger.debug(
            "Driver location updated",
            extra_data={"driver_id": driver_id, "schedule_id": schedule_id}
        )
        return location

    async def get_driver_location(self, driver_id: str) -> Optional[DriverLocation]:
        return await self.db.get(DriverLocation, driver_id)

    async def get_all_active_driver_locations(self, now: int | None = None) -> List[DriverLocation]:
        """Locations reported within the active window, newest first"""
        now = now if now is not None else now_millis()
        cutoff = now - settings.DRIVER_LOCATION_ACTIVE_SECONDS * 1000
        result = await self.db.execute(
            select(DriverLocation)
            .where(DriverLocation.timestamp > cutoff)
            .order_by(DriverLocation.timestamp.desc(), DriverLocation.driver_id)
        )
        return list(result.scalars().all())

    async def clear_driver_location(self, driver_id: str) -> bool:
        """Forget the driver's position. False when none was stored."""
        location = await self.db.get(DriverLocation, driver_id)
        if location is None:
            return False

        await self.db.delete(location)
        await self.db.commit()
        logger.info("Driver location cleared", extra_data={"driver_id": driver_id})
        return True
