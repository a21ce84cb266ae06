"""
API Routes
"""
from fastapi import APIRouter

from wasteroute.api.routes.driver_locations import router as driver_locations_router
from wasteroute.api.routes.route_details import router as route_details_router
from wasteroute.api.routes.schedules import router as schedules_router
from wasteroute.api.routes.tps import router as tps_router
from wasteroute.api.routes.users import router as users_router

router = APIRouter()

router.include_router(driver_locations_router, prefix="/driver-locations", tags=["Driver Locations"])
router.include_router(route_details_router, prefix="/route-details", tags=["Route Details"])
router.include_router(schedules_router, prefix="/schedules", tags=["Schedules"])
router.include_router(tps_router, prefix="/tps", tags=["TPS"])
router.include_router(users_router, prefix="/users", tags=["Users"])
