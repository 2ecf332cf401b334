import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from scheduler.core import errors
from scheduler.database import SessionLocal, ensure_scheduling_schema

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    errors.ValidationError: status.HTTP_400_BAD_REQUEST,
    errors.StateError: status.HTTP_400_BAD_REQUEST,
    errors.NotFoundError: status.HTTP_404_NOT_FOUND,
    errors.ConflictError: status.HTTP_409_CONFLICT,
    errors.UnavailableError: status.HTTP_409_CONFLICT,
}

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def to_http_exception(exc: errors.SchedulingError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.detail)


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Database error while handling a scheduling request', exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )
