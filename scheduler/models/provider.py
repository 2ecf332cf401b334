"""Provider model definitions."""

from sqlalchemy import Column, DateTime, Integer, String
from scheduler.database import Base
from scheduler.services.overlap import utc_now


class Provider(Base):
    """Represents the calendar owner appointments are booked against."""
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    timezone = Column(String)  # IANA name, e.g. America/Bogota
    created_at = Column(DateTime, default=utc_now)
