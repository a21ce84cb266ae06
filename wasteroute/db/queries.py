"""
Schedule Query Helpers - eager loading options for common schedule reads.

Completion records are read on every route-details load, so they are loaded
up front (selectinload) instead of lazily, which async sessions do not allow.
Usage:
    result = await db.execute(
        select(Schedule)
        .where(Schedule.id == schedule_id)
        .options(*schedule_with_completions())
    )
"""
from typing import List

from sqlalchemy.orm import selectinload, Load

from wasteroute.db.models.schedule import Schedule


def schedule_with_completions() -> List[Load]:
    """Options for fetching a schedule together with its completion records"""
    return [
        selectinload(Schedule.route_completions),
    ]
