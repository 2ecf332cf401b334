"""Blocked range model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from scheduler.database import Base
from scheduler.services.overlap import overlaps, to_utc_naive, utc_now


class BlockedRange(Base):
    """Represents an absolute-time exclusion such as a vacation or personal block."""
    __tablename__ = "blocked_ranges"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), index=True, nullable=False)
    start_at = Column(DateTime, nullable=False, index=True)  # naive UTC
    end_at = Column(DateTime, nullable=False, index=True)
    reason = Column(String)
    is_full_day = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utc_now)

    def is_blocking(self, check_start: datetime, check_end: datetime) -> bool:
        return overlaps(self.start_at, self.end_at, to_utc_naive(check_start), to_utc_naive(check_end))
