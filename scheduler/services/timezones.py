import logging

import pytz
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import ValidationError
from scheduler.models.provider import Provider

logger = logging.getLogger(__name__)


def resolve_timezone(tz_name: str | None, strict: bool | None = None):
    """Return a pytz zone for ``tz_name``.

    Unknown or empty names degrade to UTC with a warning. With strict mode on
    (argument, or STRICT_TIMEZONES when the argument is None) they raise
    ValidationError instead.
    """
    if strict is None:
        strict = config.STRICT_TIMEZONES

    name = (tz_name or '').strip()
    try:
        if not name:
            raise pytz.UnknownTimeZoneError(tz_name)
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        if strict:
            raise ValidationError(f"Unknown timezone '{tz_name}'.") from exc
        logger.warning("Invalid timezone '%s', using UTC", tz_name)
        return pytz.UTC


def provider_timezone_name(provider_id: int, db: Session) -> str:
    tz_name = db.query(Provider.timezone).filter(Provider.id == provider_id).scalar()
    return tz_name or config.DEFAULT_TIMEZONE
