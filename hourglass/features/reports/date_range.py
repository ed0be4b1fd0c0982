"""
Report date-range resolution.

Turns a timeframe selector into an inclusive [start, end] window. The
"all" timeframe is a wide bounded range so it is filtered the same way as
any other range.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
import calendar
import logging

import pytz

from hourglass.shared.config import ALL_TIME_START, REPORT_TIMEZONE
from hourglass.shared.models import Timeframe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window as ISO strings."""
    start: str
    end: str

    def contains(self, iso_date: str) -> bool:
        return self.start <= iso_date[:10] <= self.end

    def format(self, pattern: str, separator: str) -> str:
        """Format both bounds, keeping a bound as given when it is not an ISO date."""
        return f"{_format_bound(self.start, pattern)}{separator}{_format_bound(self.end, pattern)}"


def _format_bound(value: str, pattern: str) -> str:
    try:
        return date.fromisoformat(value).strftime(pattern)
    except ValueError:
        logger.warning(f"Report bound {value!r} is not an ISO date")
        return value


def report_now() -> datetime:
    """Current time in the configured report timezone."""
    return datetime.now(pytz.timezone(REPORT_TIMEZONE))


def today_in_report_timezone() -> date:
    """Current calendar day in the configured report timezone."""
    return report_now().date()


def in_range(date_range: Optional[DateRange], iso_date: str) -> bool:
    """An absent range keeps every entry."""
    return date_range is None or date_range.contains(iso_date)


def resolve_date_range(
    timeframe: Timeframe,
    start_date: str = "",
    end_date: str = "",
    today: Optional[date] = None
) -> Optional[DateRange]:
    """
    Resolve a timeframe into a concrete date window.

    Args:
        timeframe: Timeframe selector
        start_date: Custom start, as parsed into ReportParams
        end_date: Custom end, as parsed into ReportParams
        today: Reference day, defaults to today in REPORT_TIMEZONE

    Returns:
        Optional[DateRange]: Inclusive window, or None for a custom
        timeframe with a missing bound

    Notes:
        - Weeks run Monday to Sunday
        - "all" starts at ALL_TIME_START and ends today
    """
    today = today or today_in_report_timezone()
    timeframe = Timeframe(timeframe)

    if timeframe is Timeframe.WEEK:
        monday = today - timedelta(days=today.weekday())
        return DateRange(monday.isoformat(), (monday + timedelta(days=6)).isoformat())

    if timeframe is Timeframe.MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return DateRange(
            today.replace(day=1).isoformat(),
            today.replace(day=last_day).isoformat()
        )

    if timeframe is Timeframe.YEAR:
        return DateRange(date(today.year, 1, 1).isoformat(), date(today.year, 12, 31).isoformat())

    if timeframe is Timeframe.ALL:
        return DateRange(ALL_TIME_START, today.isoformat())

    if not start_date or not end_date:
        logger.info("Custom timeframe without both bounds, skipping date filtering")
        return None
    return DateRange(start_date, end_date)
