"""
Restaurant-local time helpers.

The restaurant runs in a single timezone (America/Santo_Domingo, UTC-4 with
no DST), so timestamps are stored as naive local datetimes. Aware values
coming from clients are converted to local time before they are stored or
compared.
"""

from datetime import date, datetime, time, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from criollo_shared.config.settings import settings


@lru_cache
def restaurant_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def now_local() -> datetime:
    """Current restaurant-local time without tzinfo."""
    return datetime.now(restaurant_tz()).replace(tzinfo=None, microsecond=0)


def today_local() -> date:
    return now_local().date()


def to_local(value: datetime) -> datetime:
    """Normalize a datetime to naive restaurant-local time."""
    if value.tzinfo is None:
        return value
    return value.astimezone(restaurant_tz()).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
