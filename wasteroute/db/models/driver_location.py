"""
DriverLocation Model - the last position reported by a driver on a route

One row per driver, overwritten on every report and removed when the
driver finishes or abandons the route.
"""
from sqlalchemy import Column, String, BigInteger, Float

from wasteroute.db.database import Base, now_millis


class DriverLocation(Base):
    __tablename__ = "driver_locations"

    driver_id = Column(String(64), primary_key=True)
    schedule_id = Column(String(64), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    timestamp = Column(BigInteger, default=now_millis, nullable=False, index=True)
    speed = Column(Float, nullable=False, default=0.0)  # m/s
    heading = Column(Float, nullable=False, default=0.0)  # degrees
