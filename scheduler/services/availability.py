"""Weekly availability store.

Windows are plain rows; callers run ``check_availability_overlap`` before
creating or updating one.
"""

import logging

from sqlalchemy.orm import Session

from scheduler.core.errors import NotFoundError, ValidationError
from scheduler.models.availability import AvailabilityWindow
from scheduler.services.overlap import parse_time_of_day

logger = logging.getLogger(__name__)

# Mon-Fri, 09:00-12:00 and 14:00-17:00
DEFAULT_WINDOWS = [
    (day_of_week, start_time, end_time)
    for day_of_week in range(1, 6)
    for start_time, end_time in (('09:00', '12:00'), ('14:00', '17:00'))
]


def build_window(
    provider_id: int,
    day_of_week: int,
    start_time: str,
    end_time: str,
    is_active: bool = True,
) -> AvailabilityWindow:
    if day_of_week is None or not 0 <= day_of_week <= 6:
        raise ValidationError('Invalid day of week.')

    start_minute = parse_time_of_day(start_time)
    end_minute = parse_time_of_day(end_time)
    if end_minute <= start_minute:
        raise ValidationError('End time must be after start time.')

    return AvailabilityWindow(
        provider_id=provider_id,
        day_of_week=day_of_week,
        start_minute=start_minute,
        end_minute=end_minute,
        is_active=is_active,
    )


def list_for_provider(provider_id: int, db: Session) -> list[AvailabilityWindow]:
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.provider_id == provider_id,
    ).order_by(
        AvailabilityWindow.day_of_week.asc(),
        AvailabilityWindow.start_minute.asc(),
    ).all()


def list_active_for_day(provider_id: int, day_of_week: int, db: Session) -> list[AvailabilityWindow]:
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.provider_id == provider_id,
        AvailabilityWindow.day_of_week == day_of_week,
        AvailabilityWindow.is_active.is_(True),
    ).order_by(AvailabilityWindow.start_minute.asc()).all()


def get_window(window_id: int, db: Session) -> AvailabilityWindow:
    window = db.query(AvailabilityWindow).filter(AvailabilityWindow.id == window_id).first()
    if window is None:
        raise NotFoundError('Availability window not found.')
    return window


def create_window(window: AvailabilityWindow, db: Session) -> AvailabilityWindow:
    db.add(window)
    db.commit()
    db.refresh(window)
    return window


def update_window(window: AvailabilityWindow, db: Session) -> AvailabilityWindow:
    if window.end_minute <= window.start_minute:
        raise ValidationError('End time must be after start time.')

    window = db.merge(window)
    db.commit()
    db.refresh(window)
    return window


def delete_window(window_id: int, db: Session) -> None:
    window = get_window(window_id, db)
    db.delete(window)
    db.commit()


def has_windows(provider_id: int, db: Session) -> bool:
    return db.query(AvailabilityWindow.id).filter(
        AvailabilityWindow.provider_id == provider_id,
    ).first() is not None


def seed_defaults(provider_id: int, db: Session) -> list[AvailabilityWindow]:
    """Insert the default weekly template.

    There is no duplicate guard here; a second call inserts a second copy.
    Use ``ensure_defaults`` when that matters.
    """
    windows = [
        build_window(provider_id, day_of_week, start_time, end_time)
        for day_of_week, start_time, end_time in DEFAULT_WINDOWS
    ]
    db.add_all(windows)
    db.commit()
    logger.info('Seeded %d default availability windows for provider %s', len(windows), provider_id)
    return windows


def ensure_defaults(provider_id: int, db: Session) -> bool:
    if has_windows(provider_id, db):
        return False
    seed_defaults(provider_id, db)
    return True
