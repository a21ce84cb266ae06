#!/usr/bin/env python3
"""
Seed a database with demo users, stations and a partially completed route.

Run from the project root:
    python scripts/seed_demo_data.py

Against a specific database:
    DATABASE_URL=sqlite+aiosqlite:///./demo.db python scripts/seed_demo_data.py --stops 6
"""
import sys
import asyncio
import argparse
from pathlib import Path

# Make the project importable when run as a plain script
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from wasteroute.core.config import settings  # noqa: E402
from wasteroute.core.logging import get_logger, setup_logging  # noqa: E402
from wasteroute.db import models  # noqa: E402,F401
from wasteroute.db.database import AsyncSessionLocal, Base, engine, now_millis  # noqa: E402
from wasteroute.db.models.tps import TPSStatus  # noqa: E402
from wasteroute.db.models.user import UserRole  # noqa: E402
from wasteroute.domain.services import (  # noqa: E402
    DriverLocationService,
    ScheduleService,
    TPSService,
    UserService,
)

logger = get_logger(__name__)

DEMO_STATIONS = [
    ("TPS Merdeka", "Jl. Merdeka 12", -6.9147, 107.6098),
    ("TPS Dago", "Jl. Ir. H. Juanda 88", -6.8915, 107.6107),
    ("TPS Cicadas", "Jl. Ahmad Yani 301", -6.9094, 107.6399),
    ("TPS Sukajadi", "Jl. Sukajadi 150", -6.8862, 107.5968),
    ("TPS Buah Batu", "Jl. Buah Batu 210", -6.9389, 107.6281),
    ("TPS Pasteur", "Jl. Dr. Djunjunan 45", -6.8936, 107.5844),
    ("TPS Antapani", "Jl. Terusan Jakarta 77", -6.9143, 107.6594),
    ("TPS Kopo", "Jl. Kopo 400", -6.9502, 107.5902),
]


async def seed(stop_count: int, completed_count: int) -> str:
    """Create the demo data set and return the id of the demo schedule"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        users = UserService(db)
        await users.create_user("Admin Demo", UserRole.ADMIN, approved=True)
        officer = await users.create_user("Siti Rahma", UserRole.TPS_OFFICER, approved=True)
        driver = await users.create_user("Budi Santoso", UserRole.DRIVER, approved=True)
        await users.create_user("Andi Pratama", UserRole.DRIVER)

        stations = TPSService(db)
        created = []
        for i, (name, address, lat, lng) in enumerate(DEMO_STATIONS[:stop_count]):
            created.append(await stations.create_tps(
                name=name,
                address=address,
                latitude=lat,
                longitude=lng,
                status=TPSStatus.FULL if i % 2 == 0 else TPSStatus.NOT_FULL,
                assigned_officer_id=officer.id,
            ))

        schedules = ScheduleService(db)
        schedule = await schedules.create_schedule(
            tps_route=[tps.id for tps in created],
            driver_id=driver.id,
            total_distance=round(2.5 * len(created), 1),
            estimated_duration=20 * len(created),
        )
        await schedules.assign_driver_with_date(
            schedule.id, driver.id, now_millis(), is_recurring=True
        )
        for i, tps in enumerate(created[:completed_count]):
            await schedules.update_stop_completion(
                schedule.id,
                tps.id,
                proof_photo_url=f"https://example.com/proof/{tps.id}.jpg",
                notes="Bin overflowing" if i == 0 else "",
                has_issue=i == 0,
            )

        # Driver waits at the last completed stop
        here = created[max(min(completed_count, len(created)) - 1, 0)]
        await DriverLocationService(db).update_driver_location(
            driver.id, schedule.id, here.latitude, here.longitude, speed=6.0
        )

    logger.info(
        "Demo data seeded",
        extra_data={
            "schedule_id": schedule.id,
            "stops": len(created),
            "completed": min(completed_count, len(created)),
        }
    )
    return schedule.id


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo route data")
    parser.add_argument("--stops", type=int, default=5, help=f"stations on the route (max {len(DEMO_STATIONS)})")
    parser.add_argument("--completed", type=int, default=2, help="stops already completed")
    args = parser.parse_args()

    if not 1 <= args.stops <= len(DEMO_STATIONS):
        parser.error(f"--stops must be between 1 and {len(DEMO_STATIONS)}")

    setup_logging(level=settings.LOG_LEVEL, json_format=False, app_name=settings.APP_NAME)
    schedule_id = asyncio.run(seed(args.stops, args.completed))
    print(f"Demo schedule: {schedule_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
