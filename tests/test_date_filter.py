from datetime import date, datetime
from types import SimpleNamespace

import pytest
import pytz

from core.exceptions import InvalidDateRangeError, ValidationError
from services.date_filter import filter_destinations, filter_window
from utils.date_utils import local_tz, parse_day

TZ = local_tz("Asia/Kolkata")
NOW = TZ.localize(datetime(2024, 3, 6, 10, 0))  # Wednesday


def at(year, month, day, hour=9):
    return SimpleNamespace(date=TZ.localize(datetime(year, month, day, hour)))


@pytest.fixture
def scheduled():
    return {
        "sat_before": at(2024, 3, 2),
        "sunday": at(2024, 3, 3, 0),
        "today_early": at(2024, 3, 6, 0),
        "today_late": at(2024, 3, 6, 23),
        "saturday": at(2024, 3, 9, 23),
        "next_sunday": at(2024, 3, 10),
        "feb_end": at(2024, 2, 29),
        "mar_end": at(2024, 3, 31),
    }


def names(selected, scheduled):
    return sorted(k for k, v in scheduled.items() if any(v is s for s in selected))


def test_all_returns_every_destination(scheduled):
    result = filter_destinations(scheduled.values(), "all", now=NOW, tz=TZ)
    assert len(result) == len(scheduled)


def test_today(scheduled):
    result = filter_destinations(scheduled.values(), "today", now=NOW, tz=TZ)
    assert names(result, scheduled) == ["today_early", "today_late"]


def test_this_week_starts_on_sunday(scheduled):
    result = filter_destinations(scheduled.values(), "this_week", now=NOW, tz=TZ)
    assert names(result, scheduled) == ["saturday", "sunday", "today_early", "today_late"]


def test_this_month(scheduled):
    result = filter_destinations(scheduled.values(), "this_month", now=NOW, tz=TZ)
    assert "feb_end" not in names(result, scheduled)
    assert "mar_end" in names(result, scheduled)
    assert len(result) == 7


def test_custom_range_is_inclusive(scheduled):
    result = filter_destinations(
        scheduled.values(), "custom", date(2024, 3, 2), "2024-03-03", now=NOW, tz=TZ
    )
    assert names(result, scheduled) == ["sat_before", "sunday"]


def test_custom_range_with_missing_bound_behaves_like_all(scheduled):
    everything = filter_destinations(scheduled.values(), "all", now=NOW, tz=TZ)
    assert filter_destinations(scheduled.values(), "custom", None, date(2024, 3, 3), now=NOW, tz=TZ) == everything
    assert filter_destinations(scheduled.values(), "custom", date(2024, 3, 3), None, now=NOW, tz=TZ) == everything


def test_custom_range_must_be_ordered():
    with pytest.raises(InvalidDateRangeError):
        filter_window("custom", date(2024, 3, 9), date(2024, 3, 1), now=NOW, tz=TZ)


def test_unknown_mode_is_rejected():
    with pytest.raises(ValidationError):
        filter_window("fortnight", now=NOW, tz=TZ)


def test_window_ends_at_last_microsecond():
    start, end = filter_window("today", now=NOW, tz=TZ)
    assert (start.hour, start.minute) == (0, 0)
    assert (end.hour, end.minute, end.second, end.microsecond) == (23, 59, 59, 999999)


def test_filter_returns_new_list(scheduled):
    source = list(scheduled.values())
    result = filter_destinations(source, "all", now=NOW, tz=TZ)
    assert result == source
    assert result is not source


def test_aware_datetime_picks_the_local_day():
    late_utc = pytz.UTC.localize(datetime(2024, 3, 6, 20, 0))
    assert parse_day(late_utc, TZ) == date(2024, 3, 7)
    assert parse_day(date(2024, 3, 6)) == date(2024, 3, 6)
    assert parse_day(" 2024-03-06 ") == date(2024, 3, 6)


def test_custom_range_bounds_follow_the_local_day():
    start, _ = filter_window(
        "custom", date_from=pytz.UTC.localize(datetime(2024, 3, 5, 20, 0)), date_to="2024-03-08", now=NOW, tz=TZ
    )
    assert start == TZ.localize(datetime(2024, 3, 6, 0, 0))
