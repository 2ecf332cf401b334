from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import errors
from scheduler.models.provider import Provider
from scheduler.routes.dependencies import database_unavailable, ensure_database_ready, get_db, to_http_exception
from scheduler.services import availability
from scheduler.services.timezones import resolve_timezone

router = APIRouter(tags=['providers'])


class CreateProviderRequest(BaseModel):
    email: str
    name: str | None = None
    timezone: str | None = None
    seed_default_availability: bool = True

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized or '@' not in normalized:
            raise ValueError('A valid email is required.')
        return normalized

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            resolve_timezone(value, strict=True)
        except errors.ValidationError as exc:
            raise ValueError(exc.detail) from exc
        return value.strip()


class ProviderResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    timezone: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


@router.post('/', response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(data: CreateProviderRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        existing = db.query(Provider).filter(Provider.email == data.email).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='A provider with this email already exists.',
            )

        provider = Provider(email=data.email, name=data.name, timezone=data.timezone)
        db.add(provider)
        db.commit()
        db.refresh(provider)

        if data.seed_default_availability:
            availability.ensure_defaults(provider.id, db)

        return provider
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/{provider_id}', response_model=ProviderResponse)
def get_provider(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        provider = db.query(Provider).filter(Provider.id == provider_id).first()
        if provider is None:
            raise to_http_exception(errors.NotFoundError('Provider not found.'))
        return provider
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
