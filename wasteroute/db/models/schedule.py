"""
Schedule Model - a planned collection route

``tps_route`` is the ordered list of station ids the driver visits.
``driver_id`` is free text rather than a foreign key: it may be empty or
hold the unassigned sentinel, and it may point at a user that no longer
exists.
"""
import enum

from sqlalchemy import Column, String, BigInteger, Integer, Float, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship

from wasteroute.db.database import Base, now_millis
from wasteroute.db.models.user import generate_id


class ScheduleStatus(str, enum.Enum):
    PENDING = "pending"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScheduleGenerationType(str, enum.Enum):
    MANUAL = "manual"
    AI_GENERATED = "ai_generated"


class RecurrenceType(str, enum.Enum):
    NONE = "none"
    WEEKLY = "weekly"


class SchedulePriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Schedule(Base):
    """Collection schedule"""

    __tablename__ = "schedules"

    id = Column(String(64), primary_key=True, default=generate_id)
    driver_id = Column(String(64), nullable=False, default="", index=True)
    tps_route = Column(JSON, nullable=False, default=lambda: [])

    status = Column(SQLEnum(ScheduleStatus), default=ScheduleStatus.PENDING, nullable=False, index=True)
    generation_type = Column(SQLEnum(ScheduleGenerationType), default=ScheduleGenerationType.MANUAL, nullable=False)
    priority = Column(SQLEnum(SchedulePriority), default=SchedulePriority.NORMAL, nullable=False)
    is_optimized = Column(Boolean, default=False, nullable=False)

    estimated_duration = Column(Integer, nullable=True)  # minutes
    total_distance = Column(Float, nullable=True)  # km

    # Planned collection day; an assignment date overrides it
    date = Column(BigInteger, nullable=True)
    assigned_date = Column(BigInteger, nullable=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_type = Column(SQLEnum(RecurrenceType), default=RecurrenceType.NONE, nullable=False)
    next_occurrence = Column(BigInteger, nullable=True)

    created_at = Column(BigInteger, default=now_millis, nullable=False)
    generated_at = Column(BigInteger, nullable=True)
    approved_at = Column(BigInteger, nullable=True)
    started_at = Column(BigInteger, nullable=True)
    completed_at = Column(BigInteger, nullable=True)

    route_completions = relationship(
        "RouteStopCompletion",
        back_populates="schedule",
        order_by="RouteStopCompletion.id",
        cascade="all, delete-orphan",
    )

    @property
    def start_date(self) -> int | None:
        """Epoch millis of the day the schedule may start on, None when unrestricted"""
        return self.assigned_date if self.assigned_date is not None else self.date
