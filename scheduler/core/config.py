import os

from dotenv import load_dotenv
import pytz


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scheduler.db")

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")
STRICT_TIMEZONES = _get_bool(os.getenv("STRICT_TIMEZONES"), default=False)

DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "60"))
MAX_APPOINTMENT_NOTES_LENGTH = int(os.getenv("MAX_APPOINTMENT_NOTES_LENGTH", "600"))
MAX_BLOCK_REASON_LENGTH = int(os.getenv("MAX_BLOCK_REASON_LENGTH", "200"))

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:4200"])

def validate_runtime_config() -> None:
    if DEFAULT_TIMEZONE not in pytz.all_timezones_set:
        raise RuntimeError(f"DEFAULT_TIMEZONE '{DEFAULT_TIMEZONE}' is not a known IANA timezone.")
    if DEFAULT_SLOT_DURATION_MINUTES <= 0:
        raise RuntimeError("DEFAULT_SLOT_DURATION_MINUTES must be a positive number of minutes.")
