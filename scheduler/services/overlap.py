"""Interval overlap rule and the time helpers every store shares.

Instants are persisted as naive UTC datetimes. Times of day are minutes
since local midnight and are rendered as zero-padded "HH:MM".
"""

import re
from datetime import datetime

import pytz

from scheduler.core.errors import ValidationError

MINUTES_PER_DAY = 24 * 60
TIME_OF_DAY_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """Half-open intersection test; ranges that only touch do not overlap."""
    return start_a < end_b and end_a > start_b


def parse_time_of_day(value: str) -> int:
    match = TIME_OF_DAY_PATTERN.match((value or '').strip())
    if not match:
        raise ValidationError(f"Invalid time of day '{value}'. Expected HH:MM (24-hour).")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time_of_day(minutes: int) -> str:
    if minutes is None or not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'Minute of day out of range: {minutes}')
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def minute_of_day(value: datetime, round_up: bool = False) -> int:
    minutes = value.hour * 60 + value.minute
    if round_up and (value.second or value.microsecond):
        minutes += 1
    return minutes


def to_utc_naive(value: datetime) -> datetime:
    # Naive inputs are taken to already be UTC.
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def validate_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start_utc = to_utc_naive(start)
    end_utc = to_utc_naive(end)
    if end_utc <= start_utc:
        raise ValidationError('End time must be after start time.')
    return start_utc, end_utc
