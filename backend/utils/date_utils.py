"""
Date and time utility functions for the field tracking system.
Handles timezone conversion and calendar boundaries (day, week, month).
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union
import pytz
from dateutil import parser
from dateutil.relativedelta import relativedelta

from config.settings import get_settings

UTC_TZ = pytz.UTC


def local_tz(tz_name: Optional[str] = None):
    """Timezone used for calendar boundaries (defaults to the configured one)."""
    return pytz.timezone(tz_name or get_settings().DEFAULT_TIMEZONE)


def now_local(tz=None) -> datetime:
    """Current time in the local timezone."""
    return datetime.now(tz or local_tz())


def to_local(dt: datetime, tz=None) -> datetime:
    """Convert datetime to the local timezone; naive values are taken as local."""
    tz = tz or local_tz()
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (as stored by SQLite) or convert aware ones."""
    if dt.tzinfo is None:
        return UTC_TZ.localize(dt)
    return dt.astimezone(UTC_TZ)


def to_naive_utc(dt: datetime) -> datetime:
    """UTC wall time without tzinfo, for storage columns."""
    return ensure_utc(dt).replace(tzinfo=None)


def parse_day(value: Union[str, date, datetime], tz=None) -> date:
    """
    Parse a calendar day from 'YYYY-MM-DD' (or anything dateutil accepts).
    Aware datetimes pick the day in the local timezone.
    """
    if isinstance(value, datetime):
        return to_local(value, tz).date()
    if isinstance(value, date):
        return value
    return parser.parse(value.strip()).date()


def day_bounds(day: Union[date, datetime], tz=None) -> Tuple[datetime, datetime]:
    """Inclusive [00:00:00, 23:59:59.999999] bounds of a local calendar day."""
    tz = tz or local_tz()
    if isinstance(day, datetime):
        day = to_local(day, tz).date()
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day, time.max))
    return start, end


def week_bounds(reference: datetime, tz=None) -> Tuple[datetime, datetime]:
    """Bounds of the local calendar week containing ``reference``; weeks start on Sunday."""
    tz = tz or local_tz()
    ref_day = to_local(reference, tz).date()
    # date.weekday(): Monday=0 ... Sunday=6
    days_since_sunday = (ref_day.weekday() + 1) % 7
    first = ref_day - timedelta(days=days_since_sunday)
    last = first + timedelta(days=6)
    return day_bounds(first, tz)[0], day_bounds(last, tz)[1]


def month_bounds(reference: datetime, tz=None) -> Tuple[datetime, datetime]:
    """Bounds of the local calendar month containing ``reference``."""
    tz = tz or local_tz()
    first = to_local(reference, tz).date().replace(day=1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    return day_bounds(first, tz)[0], day_bounds(last, tz)[1]
