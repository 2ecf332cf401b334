"""Create, reschedule, cancel and transition appointments.

Each write locks the provider row before running its checks, so the checks
and the write that depends on them happen under one held lock. Any failure
rolls the session back; nothing is persisted unless every check passed.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    StateError,
    UnavailableError,
    ValidationError,
)
from scheduler.models.appointment import Appointment, AppointmentStatus, is_valid_status
from scheduler.models.provider import Provider
from scheduler.services.conflicts import has_appointment_conflict, is_slot_available
from scheduler.services.overlap import to_utc_naive, utc_now, validate_range

logger = logging.getLogger(__name__)


def lock_provider(provider_id: int, db: Session) -> Provider:
    # SELECT ... FOR UPDATE; held until the caller commits or rolls back.
    # SQLite gets the same guarantee from BEGIN IMMEDIATE (see database.py).
    provider = db.query(Provider).filter(Provider.id == provider_id).with_for_update().first()
    if provider is None:
        raise NotFoundError('Provider not found.')
    return provider


def get_appointment(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError('Appointment not found.')
    return appointment


def list_provider_appointments(
    provider_id: int,
    range_start: datetime,
    range_end: datetime,
    db: Session,
    include_cancelled: bool = False,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.provider_id == provider_id,
        Appointment.start_at < to_utc_naive(range_end),
        Appointment.end_at > to_utc_naive(range_start),
    )

    if not include_cancelled:
        query = query.filter(Appointment.status != AppointmentStatus.CANCELLED)

    return query.order_by(Appointment.start_at.asc()).all()


def _normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None

    normalized = notes.strip()
    if not normalized:
        return None
    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValidationError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')
    return normalized


def _duration_minutes(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def create_appointment(candidate: Appointment, db: Session) -> Appointment:
    start_at, end_at = validate_range(candidate.start_at, candidate.end_at)

    status = candidate.status or AppointmentStatus.SCHEDULED
    if status not in AppointmentStatus.EDITABLE:
        raise ValidationError(f"New appointments cannot start in status '{status}'.")

    candidate.start_at = start_at
    candidate.end_at = end_at
    candidate.status = status
    candidate.duration_minutes = _duration_minutes(start_at, end_at)
    candidate.notes = _normalize_notes(candidate.notes)

    try:
        lock_provider(candidate.provider_id, db)

        if has_appointment_conflict(candidate.provider_id, start_at, end_at, db):
            raise ConflictError('This time is already booked.')

        if not is_slot_available(candidate.provider_id, start_at, end_at, db):
            raise UnavailableError('Selected time is not within the provider availability.')

        db.add(candidate)
        db.commit()
    except (SchedulingError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(candidate)
    logger.info(
        'Created appointment %s for provider %s (%s - %s)',
        candidate.id, candidate.provider_id, candidate.start_at, candidate.end_at,
    )
    return candidate


def reschedule_appointment(
    appointment_id: int,
    new_start: datetime,
    new_end: datetime,
    db: Session,
) -> Appointment:
    appointment = get_appointment(appointment_id, db)

    try:
        lock_provider(appointment.provider_id, db)
        db.refresh(appointment)

        if not appointment.is_editable():
            raise StateError('Appointment cannot be rescheduled.')

        start_at, end_at = validate_range(new_start, new_end)

        if has_appointment_conflict(
            appointment.provider_id, start_at, end_at, db, exclude_appointment_id=appointment.id,
        ):
            raise ConflictError('New time conflicts with an existing appointment.')

        appointment.start_at = start_at
        appointment.end_at = end_at
        appointment.duration_minutes = _duration_minutes(start_at, end_at)
        db.commit()
    except (SchedulingError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info('Rescheduled appointment %s to %s - %s', appointment.id, appointment.start_at, appointment.end_at)
    return appointment


def cancel_appointment(appointment_id: int, db: Session, reason: str | None = None) -> Appointment:
    appointment = get_appointment(appointment_id, db)

    try:
        lock_provider(appointment.provider_id, db)
        db.refresh(appointment)

        if not appointment.is_cancellable():
            raise StateError('Appointment cannot be cancelled.')

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancelled_at = utc_now()
        appointment.cancellation_reason = _normalize_notes(reason)
        db.commit()
    except (SchedulingError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info('Cancelled appointment %s', appointment.id)
    return appointment


def update_appointment_status(appointment_id: int, status: str, db: Session) -> Appointment:
    normalized = (status or '').strip().upper()
    if not is_valid_status(normalized):
        raise ValidationError(f"Invalid appointment status '{status}'.")

    if normalized == AppointmentStatus.CANCELLED:
        return cancel_appointment(appointment_id, db)

    appointment = get_appointment(appointment_id, db)

    try:
        lock_provider(appointment.provider_id, db)
        db.refresh(appointment)

        if not appointment.is_editable():
            raise StateError(f"Appointment in status '{appointment.status}' cannot change status.")

        previous = appointment.status
        appointment.status = normalized
        db.commit()
    except (SchedulingError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info('Appointment %s status %s -> %s', appointment.id, previous, appointment.status)
    return appointment
