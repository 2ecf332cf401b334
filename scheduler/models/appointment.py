"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from scheduler.database import Base
from scheduler.services.overlap import utc_now


class AppointmentStatus:
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    ALL = (SCHEDULED, CONFIRMED, COMPLETED, CANCELLED, NO_SHOW)
    EDITABLE = (SCHEDULED, CONFIRMED)
    # Statuses that no longer hold their time range.
    RELEASED = (CANCELLED, NO_SHOW)


def is_valid_status(status: str) -> bool:
    return status in AppointmentStatus.ALL


class Appointment(Base):
    """Represents a scheduled appointment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), index=True, nullable=False)
    client_id = Column(Integer, index=True)
    client_name = Column(String)
    client_email = Column(String, index=True)
    appointment_type = Column(String)
    start_at = Column(DateTime, nullable=False, index=True)  # naive UTC
    end_at = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer)
    status = Column(String(20), default=AppointmentStatus.SCHEDULED, index=True, nullable=False)
    notes = Column(Text)
    cancellation_reason = Column(Text)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    def is_editable(self) -> bool:
        return self.status in AppointmentStatus.EDITABLE

    def is_cancellable(self) -> bool:
        return self.status in AppointmentStatus.EDITABLE
