"""Timezone conversion utilities"""
from datetime import date, datetime, tzinfo
from typing import Optional
import pytz

from .logger import setup_logger

logger = setup_logger(__name__)


def to_utc(dt: datetime, tz: Optional[str] = None) -> datetime:
    """
    Convert a datetime to an aware UTC datetime.

    Args:
        dt: Datetime object (naive or timezone-aware)
        tz: Optional timezone string (e.g., 'America/New_York')
            If provided and dt is naive, dt is assumed to be in that timezone

    Returns:
        Datetime object in UTC
    """
    if dt.tzinfo is None:
        if tz:
            # Naive datetime, assume it's in the specified timezone
            tz_obj = pytz.timezone(tz)
            dt = tz_obj.localize(dt)
        else:
            # Naive datetime, assume UTC
            dt = pytz.UTC.localize(dt)

    return dt.astimezone(pytz.UTC)


def now_utc() -> datetime:
    """Get current UTC time as an aware datetime"""
    return datetime.now(pytz.UTC)


def is_valid_timezone(name: str) -> bool:
    """Check whether name is a known IANA timezone"""
    if not name or not isinstance(name, str):
        return False
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def get_timezone(name: str) -> tzinfo:
    """
    Look up a timezone by IANA name.

    Unknown names fall back to UTC so a bad stored value never breaks
    date and hour calculations.
    """
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{name}', falling back to UTC")
        return pytz.UTC


def to_local(instant: datetime, tz: str) -> datetime:
    """Convert an instant into the wall-clock time of the given zone"""
    return to_utc(instant).astimezone(get_timezone(tz))


def local_date(instant: datetime, tz: str) -> date:
    """Civil calendar date of an instant in the given zone"""
    return to_local(instant, tz).date()


def date_key(instant: datetime, tz: str) -> str:
    """Civil date of an instant in the given zone as YYYY-MM-DD"""
    return local_date(instant, tz).isoformat()


def local_hour(instant: datetime, tz: str) -> int:
    """Hour of day (0-23) of an instant in the given zone"""
    return int(to_local(instant, tz).strftime("%H"))


def format_local_time(instant: datetime, tz: str) -> str:
    """Format an instant like 'Sat, May 11, 10:00 PM EDT' in the given zone"""
    local = to_local(instant, tz)
    hour = local.hour % 12 or 12
    return (
        f"{local.strftime('%a, %b')} {local.day}, "
        f"{hour}:{local.strftime('%M %p')} {local.strftime('%Z')}"
    ).strip()
