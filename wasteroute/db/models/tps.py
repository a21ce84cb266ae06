"""
TPS Model - Transfer Point Station

A fixed waste-collection stop. Officers flag a station FULL when it needs
pickup; a driver's visit resets it to NOT_FULL.
"""
import enum

from sqlalchemy import Column, String, BigInteger, Float, Enum as SQLEnum, ForeignKey

from wasteroute.db.database import Base, now_millis
from wasteroute.db.models.user import generate_id


class TPSStatus(str, enum.Enum):
    FULL = "full"
    NOT_FULL = "not_full"


class TPS(Base):
    """Transfer point station"""

    __tablename__ = "tps"

    id = Column(String(64), primary_key=True, default=generate_id)
    name = Column(String(200), nullable=False, index=True)
    address = Column(String(300), nullable=False, default="")
    latitude = Column(Float, nullable=False, default=0.0)
    longitude = Column(Float, nullable=False, default=0.0)
    status = Column(SQLEnum(TPSStatus), default=TPSStatus.NOT_FULL, nullable=False)
    assigned_officer_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    last_updated = Column(BigInteger, default=now_millis, onupdate=now_millis, nullable=False)
