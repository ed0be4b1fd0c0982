"""
Tests for timeframe resolution.
"""

from datetime import date

from hourglass.shared.models import Timeframe
from hourglass.features.reports.date_range import (
    DateRange,
    in_range,
    resolve_date_range,
    today_in_report_timezone
)

TODAY = date(2024, 2, 14)  # Wednesday


def test_week_runs_monday_to_sunday():
    assert resolve_date_range(Timeframe.WEEK, today=TODAY) == DateRange("2024-02-12", "2024-02-18")


def test_week_on_sunday_stays_in_same_week():
    assert resolve_date_range("week", today=date(2024, 2, 18)) == DateRange("2024-02-12", "2024-02-18")


def test_month_covers_leap_february():
    assert resolve_date_range(Timeframe.MONTH, today=TODAY) == DateRange("2024-02-01", "2024-02-29")


def test_year_covers_calendar_year():
    assert resolve_date_range(Timeframe.YEAR, today=TODAY) == DateRange("2024-01-01", "2024-12-31")


def test_all_starts_at_floor_and_ends_today():
    date_range = resolve_date_range(Timeframe.ALL)

    assert date_range.start == "2000-01-01"
    assert date_range.end == today_in_report_timezone().isoformat()


def test_custom_uses_bounds_verbatim():
    date_range = resolve_date_range(Timeframe.CUSTOM, "2023-05-01", "2023-05-31", today=TODAY)

    assert date_range == DateRange("2023-05-01", "2023-05-31")
    assert date_range.contains("2023-05-31")
    assert not date_range.contains("2023-06-01")


def test_custom_missing_bound_is_absent_and_keeps_everything():
    assert resolve_date_range(Timeframe.CUSTOM, "2023-05-01", "", today=TODAY) is None
    assert resolve_date_range(Timeframe.CUSTOM, "", "", today=TODAY) is None
    assert in_range(None, "1990-01-01")
