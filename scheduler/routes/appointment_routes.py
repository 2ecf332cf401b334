from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import config, errors
from scheduler.models.appointment import Appointment, AppointmentStatus
from scheduler.routes.dependencies import database_unavailable, ensure_database_ready, get_db, to_http_exception
from scheduler.services import appointments
from scheduler.services.overlap import as_utc

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    start_time: datetime
    end_time: datetime | None = None
    duration_minutes: int | None = None
    client_id: int | None = None
    client_name: str | None = None
    client_email: str | None = None
    appointment_type: str | None = None
    notes: str | None = None
    status: str = AppointmentStatus.SCHEDULED

    @field_validator('client_email')
    @classmethod
    def normalize_client_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in AppointmentStatus.EDITABLE:
            raise ValueError('New appointments must be SCHEDULED or CONFIRMED.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized

    @model_validator(mode='after')
    def resolve_end_time(self):
        if self.end_time is None:
            if not self.duration_minutes or self.duration_minutes <= 0:
                raise ValueError('Provide end_time or a positive duration_minutes.')
            self.end_time = self.start_time + timedelta(minutes=self.duration_minutes)
        return self


class RescheduleAppointmentRequest(BaseModel):
    start_time: datetime
    end_time: datetime


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None


class UpdateStatusRequest(BaseModel):
    status: str


class AppointmentResponse(BaseModel):
    id: int
    provider_id: int
    client_id: int | None = None
    client_name: str | None = None
    client_email: str | None = None
    appointment_type: str | None = None
    start_at: datetime
    end_at: datetime
    duration_minutes: int | None = None
    status: str
    notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator('start_at', 'end_at', 'cancelled_at')
    @classmethod
    def mark_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return as_utc(value)


@router.post('/', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    candidate = Appointment(
        provider_id=data.provider_id,
        client_id=data.client_id,
        client_name=data.client_name,
        client_email=data.client_email,
        appointment_type=data.appointment_type,
        start_at=data.start_time,
        end_at=data.end_time,
        notes=data.notes,
        status=data.status,
    )

    try:
        return appointments.create_appointment(candidate, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return appointments.get_appointment(appointment_id, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/providers/{provider_id}', response_model=list[AppointmentResponse])
def list_appointments(
    provider_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    include_cancelled: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointments.list_provider_appointments(
            provider_id, start, end, db, include_cancelled=include_cancelled,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointments.reschedule_appointment(appointment_id, data.start_time, data.end_time, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointments.cancel_appointment(appointment_id, db, reason=data.reason)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return appointments.update_appointment_status(appointment_id, data.status, db)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
