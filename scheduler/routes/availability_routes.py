from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import config, errors
from scheduler.models.provider import Provider
from scheduler.routes.dependencies import database_unavailable, ensure_database_ready, get_db, to_http_exception
from scheduler.services import availability, blocked_ranges, conflicts
from scheduler.services.overlap import as_utc, validate_range
from scheduler.services.slots import TimeSlot, generate_slots
from scheduler.services.timezones import provider_timezone_name

router = APIRouter(tags=['availability'])


class WindowRequest(BaseModel):
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool = True

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('Invalid day of week.')
        return value

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_time(cls, value: str) -> str:
        return value.strip()


class WindowResponse(BaseModel):
    id: int
    provider_id: int
    day_of_week: int
    day_name: str
    start_time: str
    end_time: str
    is_active: bool

    class Config:
        from_attributes = True


class CreateBlockedRangeRequest(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    reason: str | None = None

    @model_validator(mode='after')
    def validate_bounds(self):
        has_dates = self.start_date is not None and self.end_date is not None
        has_instants = self.start_at is not None and self.end_at is not None
        if has_dates == has_instants:
            raise ValueError('Provide either start_date and end_date, or start_at and end_at.')
        return self


class BlockedRangeResponse(BaseModel):
    id: int
    provider_id: int
    start_at: datetime
    end_at: datetime
    reason: str | None = None
    is_full_day: bool
    overlaps_existing: bool = False

    class Config:
        from_attributes = True

    @field_validator('start_at', 'end_at')
    @classmethod
    def mark_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class AvailableSlotsResponse(BaseModel):
    provider_id: int
    date: date
    timezone: str
    slot_duration_minutes: int
    slots: list[TimeSlot]


class SlotCheckResponse(BaseModel):
    provider_id: int
    start_time: datetime
    end_time: datetime
    is_available: bool


def get_provider_or_404(provider_id: int, db: Session) -> Provider:
    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if provider is None:
        raise to_http_exception(errors.NotFoundError('Provider not found.'))
    return provider


@router.get('/providers/{provider_id}/windows', response_model=list[WindowResponse])
def list_windows(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        get_provider_or_404(provider_id, db)
        availability.ensure_defaults(provider_id, db)
        return availability.list_for_provider(provider_id, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/providers/{provider_id}/windows', response_model=WindowResponse, status_code=status.HTTP_201_CREATED)
def create_window(provider_id: int, data: WindowRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        get_provider_or_404(provider_id, db)
        window = availability.build_window(
            provider_id, data.day_of_week, data.start_time, data.end_time, data.is_active,
        )

        if data.is_active and conflicts.check_availability_overlap(
            provider_id, data.day_of_week, data.start_time, data.end_time, db,
        ):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Window overlaps with existing availability.',
            )

        return availability.create_window(window, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.put('/windows/{window_id}', response_model=WindowResponse)
def update_window(window_id: int, data: WindowRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        window = availability.get_window(window_id, db)
        replacement = availability.build_window(
            window.provider_id, data.day_of_week, data.start_time, data.end_time, data.is_active,
        )

        if data.is_active and conflicts.check_availability_overlap(
            window.provider_id,
            data.day_of_week,
            data.start_time,
            data.end_time,
            db,
            exclude_window_id=window.id,
        ):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Window overlaps with existing availability.',
            )

        window.day_of_week = replacement.day_of_week
        window.start_minute = replacement.start_minute
        window.end_minute = replacement.end_minute
        window.is_active = replacement.is_active

        return availability.update_window(window, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/windows/{window_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_window(window_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        availability.delete_window(window_id, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/providers/{provider_id}/blocked-ranges', response_model=list[BlockedRangeResponse])
def list_blocked_ranges(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        get_provider_or_404(provider_id, db)
        return blocked_ranges.list_future_and_recent(provider_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post(
    '/providers/{provider_id}/blocked-ranges',
    response_model=BlockedRangeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_blocked_range(provider_id: int, data: CreateBlockedRangeRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        provider = get_provider_or_404(provider_id, db)

        if data.start_date is not None:
            blocked_range = blocked_ranges.build_full_day_block(
                provider_id,
                data.start_date,
                data.end_date,
                data.reason,
                provider.timezone or config.DEFAULT_TIMEZONE,
            )
        else:
            blocked_range = blocked_ranges.build_blocked_range(provider_id, data.start_at, data.end_at, data.reason)

        # Overlapping blocks are allowed; the flag lets the caller warn about them.
        overlaps_existing = conflicts.check_blocked_range_overlap(
            provider_id, blocked_range.start_at, blocked_range.end_at, db,
        )

        blocked_range = blocked_ranges.create_blocked_range(blocked_range, db)
        response = BlockedRangeResponse.model_validate(blocked_range)
        response.overlaps_existing = overlaps_existing
        return response
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/blocked-ranges/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_range(block_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        blocked_ranges.delete_blocked_range(block_id, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/providers/{provider_id}/slots', response_model=AvailableSlotsResponse)
def list_available_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    duration_minutes: int = Query(default=config.DEFAULT_SLOT_DURATION_MINUTES, ge=1, le=24 * 60),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_provider_or_404(provider_id, db)
        tz_name = provider_timezone_name(provider_id, db)
        slots = generate_slots(provider_id, slot_date, duration_minutes, db, provider_timezone=tz_name)

        return AvailableSlotsResponse(
            provider_id=provider_id,
            date=slot_date,
            timezone=tz_name,
            slot_duration_minutes=duration_minutes,
            slots=slots,
        )
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/providers/{provider_id}/check', response_model=SlotCheckResponse)
def check_slot(
    provider_id: int,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        validate_range(start_time, end_time)
        get_provider_or_404(provider_id, db)
        is_available = conflicts.is_slot_available(provider_id, start_time, end_time, db)

        return SlotCheckResponse(
            provider_id=provider_id,
            start_time=as_utc(start_time),
            end_time=as_utc(end_time),
            is_available=is_available,
        )
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
