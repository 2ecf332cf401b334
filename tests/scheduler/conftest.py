import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from scheduler.database import Base  # noqa: E402
from scheduler.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from scheduler.models.availability import AvailabilityWindow  # noqa: E402
from scheduler.models.blocked_range import BlockedRange  # noqa: E402
from scheduler.models.provider import Provider  # noqa: E402
from scheduler.services.overlap import parse_time_of_day  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def provider(db):
    provider = Provider(email='provider@example.com', name='Provider', timezone='UTC')
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return provider


@pytest.fixture
def add_window(db):
    def _add_window(provider_id, day_of_week, start_time, end_time, is_active=True):
        window = AvailabilityWindow(
            provider_id=provider_id,
            day_of_week=day_of_week,
            start_minute=parse_time_of_day(start_time),
            end_minute=parse_time_of_day(end_time),
            is_active=is_active,
        )
        db.add(window)
        db.commit()
        db.refresh(window)
        return window

    return _add_window


@pytest.fixture
def add_block(db):
    def _add_block(provider_id, start_at, end_at, reason=None):
        blocked_range = BlockedRange(provider_id=provider_id, start_at=start_at, end_at=end_at, reason=reason)
        db.add(blocked_range)
        db.commit()
        db.refresh(blocked_range)
        return blocked_range

    return _add_block


@pytest.fixture
def add_appointment(db):
    def _add_appointment(provider_id, start_at, end_at, status=AppointmentStatus.SCHEDULED):
        appointment = Appointment(
            provider_id=provider_id,
            client_name='Client',
            client_email='client@example.com',
            start_at=start_at,
            end_at=end_at,
            duration_minutes=int((end_at - start_at).total_seconds() // 60),
            status=status,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _add_appointment
