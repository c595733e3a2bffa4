
# Destination Date Filter
# Buckets destinations by their scheduled date (today / this week / this month / custom range)


from typing import Iterable, List, Optional, Tuple, TypeVar, Union
from datetime import date, datetime

from core.exceptions import InvalidDateRangeError, ValidationError
from schemas.destination import DateFilterMode
from utils.date_utils import day_bounds, local_tz, month_bounds, now_local, parse_day, to_local, week_bounds

T = TypeVar("T")

DayLike = Union[str, date, datetime, None]


def filter_window(
    mode: Union[DateFilterMode, str],
    date_from: DayLike = None,
    date_to: DayLike = None,
    now: Optional[datetime] = None,
    tz=None,
) -> Optional[Tuple[datetime, datetime]]:
    """
    Inclusive local-time window for a filter mode, or None when nothing is filtered.
    A custom range with a missing bound is treated like ``all``.
    """
    try:
        mode = DateFilterMode(mode)
    except ValueError:
        raise ValidationError(f"Unknown date filter mode: {mode!r}", field="mode")

    tz = tz or local_tz()
    now = to_local(now, tz) if now is not None else now_local(tz)

    if mode == DateFilterMode.ALL:
        return None
    if mode == DateFilterMode.TODAY:
        return day_bounds(now, tz)
    if mode == DateFilterMode.THIS_WEEK:
        return week_bounds(now, tz)
    if mode == DateFilterMode.THIS_MONTH:
        return month_bounds(now, tz)

    if date_from is None or date_to is None or date_from == "" or date_to == "":
        return None
    first, last = parse_day(date_from, tz), parse_day(date_to, tz)
    if first > last:
        raise InvalidDateRangeError(first.isoformat(), last.isoformat())
    return day_bounds(first, tz)[0], day_bounds(last, tz)[1]


def filter_destinations(
    destinations: Iterable[T],
    mode: Union[DateFilterMode, str] = DateFilterMode.ALL,
    date_from: DayLike = None,
    date_to: DayLike = None,
    now: Optional[datetime] = None,
    tz=None,
) -> List[T]:
    """Return a new list of the destinations whose ``date`` falls in the selected window"""
    tz = tz or local_tz()
    window = filter_window(mode, date_from, date_to, now=now, tz=tz)
    if window is None:
        return list(destinations)

    start, end = window
    return [d for d in destinations if start <= to_local(d.date, tz) <= end]
