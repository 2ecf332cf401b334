"""
Slot generation.

Produces the bookable slots of a fixed duration for one local day:
availability windows for the weekday, minus blocked ranges and existing
appointments overlapping that day.
"""

import logging
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel
from sqlalchemy.orm import Session

from scheduler.core.errors import ValidationError
from scheduler.services import availability, blocked_ranges
from scheduler.services.appointments import list_provider_appointments
from scheduler.services.conflicts import local_weekday
from scheduler.services.overlap import as_utc, overlaps, to_utc_naive
from scheduler.services.timezones import provider_timezone_name, resolve_timezone

logger = logging.getLogger(__name__)


class TimeSlot(BaseModel):
    start_time: datetime
    end_time: datetime


def local_day_bounds(target_date: date, tz) -> tuple[datetime, datetime]:
    day_start = tz.localize(datetime.combine(target_date, time.min))
    day_end = tz.localize(datetime.combine(target_date + timedelta(days=1), time.min))
    return day_start, day_end


def generate_slots(
    provider_id: int,
    target_date: date,
    slot_duration_minutes: int,
    db: Session,
    provider_timezone: str | None = None,
) -> list[TimeSlot]:
    """
    Available slots for ``target_date`` in the provider's timezone.

    Algorithm:
        1. Resolve the timezone (unknown names fall back to UTC)
        2. Local midnight-to-midnight bounds and weekday for the date
        3. Active windows for the weekday, ordered by start
        4. Blocked ranges and non-cancelled appointments overlapping the day
        5. Walk each window in fixed steps; a slot must end on or before the
           window end
        6. Drop slots overlapping any block or appointment

    Returned slots are in UTC and in chronological order.
    """
    if slot_duration_minutes is None or slot_duration_minutes <= 0:
        raise ValidationError('Slot duration must be a positive number of minutes.')

    if provider_timezone is None:
        provider_timezone = provider_timezone_name(provider_id, db)
    tz = resolve_timezone(provider_timezone)

    day_start, day_end = local_day_bounds(target_date, tz)
    day_of_week = local_weekday(day_start)

    windows = availability.list_active_for_day(provider_id, day_of_week, db)
    if not windows:
        return []

    blocks = blocked_ranges.list_overlapping(provider_id, day_start, day_end, db)
    appointments = list_provider_appointments(provider_id, day_start, day_end, db)

    slot_duration = timedelta(minutes=slot_duration_minutes)
    available_slots: list[TimeSlot] = []

    local_midnight = datetime.combine(target_date, time.min)

    for window in windows:
        window_start = tz.localize(local_midnight + timedelta(minutes=window.start_minute))
        window_end = tz.localize(local_midnight + timedelta(minutes=window.end_minute))

        slot_start = as_utc(window_start)
        window_end_utc = as_utc(window_end)

        while slot_start + slot_duration <= window_end_utc:
            slot_end = slot_start + slot_duration
            start_naive = to_utc_naive(slot_start)
            end_naive = to_utc_naive(slot_end)

            is_blocked = any(block.is_blocking(start_naive, end_naive) for block in blocks)
            has_conflict = not is_blocked and any(
                overlaps(appointment.start_at, appointment.end_at, start_naive, end_naive)
                for appointment in appointments
            )

            if not is_blocked and not has_conflict:
                available_slots.append(TimeSlot(start_time=slot_start, end_time=slot_end))

            slot_start = slot_end

    logger.debug(
        'Generated %d slots for provider %s on %s (%s)',
        len(available_slots), provider_id, target_date, provider_timezone,
    )
    return available_slots
