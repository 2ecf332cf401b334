"""Conflict detection for candidate ranges and configuration changes.

Every check here is a read. None of them reserves anything; writers hold the
provider lock from ``appointments.lock_provider`` while they run these checks.
"""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from scheduler.models.appointment import Appointment, AppointmentStatus
from scheduler.models.availability import AvailabilityWindow
from scheduler.models.blocked_range import BlockedRange
from scheduler.services.overlap import (
    MINUTES_PER_DAY,
    as_utc,
    minute_of_day,
    parse_time_of_day,
    to_utc_naive,
)
from scheduler.services.timezones import provider_timezone_name, resolve_timezone


def local_weekday(value: datetime) -> int:
    # datetime.weekday() is Monday=0; windows use Sunday=0.
    return (value.weekday() + 1) % 7


def is_within_availability(
    provider_id: int,
    start: datetime,
    end: datetime,
    tz_name: str,
    db: Session,
) -> bool:
    tz = resolve_timezone(tz_name)
    local_start = as_utc(start).astimezone(tz)
    local_end = as_utc(end).astimezone(tz)

    start_minute = minute_of_day(local_start)
    # A partial trailing minute still has to fit inside the window.
    end_minute = minute_of_day(local_end, round_up=True)
    if local_end.date() != local_start.date():
        if local_end.date() == local_start.date() + timedelta(days=1) and end_minute == 0:
            end_minute = MINUTES_PER_DAY
        else:
            return False

    matching_window = db.query(AvailabilityWindow.id).filter(
        AvailabilityWindow.provider_id == provider_id,
        AvailabilityWindow.day_of_week == local_weekday(local_start),
        AvailabilityWindow.is_active.is_(True),
        AvailabilityWindow.start_minute <= start_minute,
        AvailabilityWindow.end_minute >= end_minute,
    ).first()

    return matching_window is not None


def has_blocked_conflict(provider_id: int, start: datetime, end: datetime, db: Session) -> bool:
    blocking = db.query(BlockedRange.id).filter(
        BlockedRange.provider_id == provider_id,
        BlockedRange.start_at < to_utc_naive(end),
        BlockedRange.end_at > to_utc_naive(start),
    ).first()
    return blocking is not None


def has_appointment_conflict(
    provider_id: int,
    start: datetime,
    end: datetime,
    db: Session,
    exclude_appointment_id: int | None = None,
) -> bool:
    query = db.query(Appointment.id).filter(
        Appointment.provider_id == provider_id,
        Appointment.status.notin_(AppointmentStatus.RELEASED),
        Appointment.start_at < to_utc_naive(end),
        Appointment.end_at > to_utc_naive(start),
    )

    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return query.first() is not None


def is_slot_available(
    provider_id: int,
    start: datetime,
    end: datetime,
    db: Session,
    tz_name: str | None = None,
) -> bool:
    if tz_name is None:
        tz_name = provider_timezone_name(provider_id, db)

    if not is_within_availability(provider_id, start, end, tz_name, db):
        return False
    if has_blocked_conflict(provider_id, start, end, db):
        return False
    return not has_appointment_conflict(provider_id, start, end, db)


def check_availability_overlap(
    provider_id: int,
    day_of_week: int,
    start_time: str,
    end_time: str,
    db: Session,
    exclude_window_id: int | None = None,
) -> bool:
    start_minute = parse_time_of_day(start_time)
    end_minute = parse_time_of_day(end_time)

    query = db.query(AvailabilityWindow.id).filter(
        AvailabilityWindow.provider_id == provider_id,
        AvailabilityWindow.day_of_week == day_of_week,
        AvailabilityWindow.is_active.is_(True),
        AvailabilityWindow.start_minute < end_minute,
        AvailabilityWindow.end_minute > start_minute,
    )

    if exclude_window_id is not None:
        query = query.filter(AvailabilityWindow.id != exclude_window_id)

    return query.first() is not None


def check_blocked_range_overlap(
    provider_id: int,
    start_at: datetime,
    end_at: datetime,
    db: Session,
    exclude_block_id: int | None = None,
) -> bool:
    query = db.query(BlockedRange.id).filter(
        BlockedRange.provider_id == provider_id,
        BlockedRange.start_at < to_utc_naive(end_at),
        BlockedRange.end_at > to_utc_naive(start_at),
    )

    if exclude_block_id is not None:
        query = query.filter(BlockedRange.id != exclude_block_id)

    return query.first() is not None
