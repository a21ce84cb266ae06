"""
Database Models
"""
from wasteroute.db.models.user import User
from wasteroute.db.models.tps import TPS
from wasteroute.db.models.schedule import Schedule
from wasteroute.db.models.route_stop_completion import RouteStopCompletion
from wasteroute.db.models.driver_location import DriverLocation

__all__ = [
    "User",
    "TPS",
    "Schedule",
    "RouteStopCompletion",
    "DriverLocation",
]
