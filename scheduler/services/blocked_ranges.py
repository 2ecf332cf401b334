from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import NotFoundError, ValidationError
from scheduler.models.blocked_range import BlockedRange
from scheduler.services.overlap import to_utc_naive, utc_now, validate_range
from scheduler.services.timezones import resolve_timezone


def _normalize_reason(reason: str | None) -> str | None:
    if reason is None:
        return None

    normalized = reason.strip()
    if not normalized:
        return None
    if len(normalized) > config.MAX_BLOCK_REASON_LENGTH:
        raise ValidationError(f'Reason must be {config.MAX_BLOCK_REASON_LENGTH} characters or fewer.')
    return normalized


def build_blocked_range(
    provider_id: int,
    start_at: datetime,
    end_at: datetime,
    reason: str | None = None,
) -> BlockedRange:
    start_utc, end_utc = validate_range(start_at, end_at)
    return BlockedRange(
        provider_id=provider_id,
        start_at=start_utc,
        end_at=end_utc,
        reason=_normalize_reason(reason),
        is_full_day=False,
    )


def build_full_day_block(
    provider_id: int,
    start_date: date,
    end_date: date,
    reason: str | None = None,
    tz_name: str | None = None,
) -> BlockedRange:
    """Block whole local days, ``start_date`` through ``end_date`` inclusive."""
    if end_date < start_date:
        raise ValidationError('End date must be on or after start date.')

    tz = resolve_timezone(tz_name or config.DEFAULT_TIMEZONE)
    start_at = tz.localize(datetime.combine(start_date, time.min))
    # One second before the local midnight that follows the last day.
    end_at = tz.localize(datetime.combine(end_date + timedelta(days=1), time.min)) - timedelta(seconds=1)

    return BlockedRange(
        provider_id=provider_id,
        start_at=to_utc_naive(start_at),
        end_at=to_utc_naive(end_at),
        reason=_normalize_reason(reason),
        is_full_day=True,
    )


def list_overlapping(
    provider_id: int,
    range_start: datetime,
    range_end: datetime,
    db: Session,
) -> list[BlockedRange]:
    return db.query(BlockedRange).filter(
        BlockedRange.provider_id == provider_id,
        BlockedRange.start_at < to_utc_naive(range_end),
        BlockedRange.end_at > to_utc_naive(range_start),
    ).order_by(BlockedRange.start_at.asc()).all()


def list_future_and_recent(provider_id: int, db: Session, now: datetime | None = None) -> list[BlockedRange]:
    current = to_utc_naive(now) if now is not None else utc_now()
    today = datetime.combine(current.date(), time.min)

    return db.query(BlockedRange).filter(
        BlockedRange.provider_id == provider_id,
        BlockedRange.end_at >= today,
    ).order_by(BlockedRange.start_at.asc()).all()


def get_blocked_range(block_id: int, db: Session) -> BlockedRange:
    blocked_range = db.query(BlockedRange).filter(BlockedRange.id == block_id).first()
    if blocked_range is None:
        raise NotFoundError('Blocked range not found.')
    return blocked_range


def create_blocked_range(blocked_range: BlockedRange, db: Session) -> BlockedRange:
    db.add(blocked_range)
    db.commit()
    db.refresh(blocked_range)
    return blocked_range


def delete_blocked_range(block_id: int, db: Session) -> None:
    blocked_range = get_blocked_range(block_id, db)
    db.delete(blocked_range)
    db.commit()
