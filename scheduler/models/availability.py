"""Availability model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer
from scheduler.database import Base
from scheduler.services.overlap import format_time_of_day

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class AvailabilityWindow(Base):
    """Represents a recurring weekly working window for a provider."""
    __tablename__ = "availability_windows"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), index=True, nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday...6=Saturday
    start_minute = Column(Integer, nullable=False)  # minutes since local midnight
    end_minute = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def start_time(self) -> str:
        return format_time_of_day(self.start_minute)

    @property
    def end_time(self) -> str:
        return format_time_of_day(self.end_minute)

    @property
    def day_name(self) -> str:
        if self.day_of_week is not None and 0 <= self.day_of_week < len(DAY_NAMES):
            return DAY_NAMES[self.day_of_week]
        return ""
