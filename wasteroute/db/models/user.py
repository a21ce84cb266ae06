"""
User Model - Admins, TPS Officers and Collection Drivers
"""
import enum
import uuid

from sqlalchemy import Column, String, BigInteger, Boolean, Enum as SQLEnum

from wasteroute.db.database import Base, now_millis


def generate_id() -> str:
    """Opaque string identifier shared by every model"""
    return uuid.uuid4().hex


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    TPS_OFFICER = "tps_officer"
    DRIVER = "driver"


class User(Base):
    """User model. New sign-ups stay unapproved until an admin approves them."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, default="")
    email = Column(String(254), unique=True, nullable=True, index=True)
    role = Column(SQLEnum(UserRole), default=UserRole.TPS_OFFICER, nullable=False, index=True)
    approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(BigInteger, default=now_millis, nullable=False)
