"""
Domain Services
"""
from wasteroute.domain.services.schedule_service import ScheduleService
from wasteroute.domain.services.user_service import UserService
from wasteroute.domain.services.tps_service import TPSService
from wasteroute.domain.services.driver_location_service import DriverLocationService

__all__ = [
    "ScheduleService",
    "UserService",
    "TPSService",
    "DriverLocationService",
]
