"""
RouteStopCompletion Model - evidence that a driver visited a station
"""
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, Float, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from wasteroute.db.database import Base


class RouteStopCompletion(Base):
    """One record per (schedule, station); re-reporting a stop overwrites it"""

    __tablename__ = "route_stop_completions"
    __table_args__ = (
        UniqueConstraint("schedule_id", "tps_id", name="uq_route_stop_completion_schedule_tps"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(String(64), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    tps_id = Column(String(64), nullable=False)
    completed_at = Column(BigInteger, nullable=False)
    proof_photo_url = Column(String(1000), nullable=True)
    notes = Column(Text, nullable=False, default="")
    has_issue = Column(Boolean, nullable=False, default=False)
    driver_latitude = Column(Float, nullable=True)
    driver_longitude = Column(Float, nullable=True)

    schedule = relationship("Schedule", back_populates="route_completions")
