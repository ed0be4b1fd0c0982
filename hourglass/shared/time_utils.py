"""
Hours formatting helpers.

Timesheet documents store hours either as decimal numbers or as "H:MM"
strings; everything downstream works in decimal hours.
"""

import re
from typing import Union

HOURS_MINUTES_PATTERN = re.compile(r"^(\d+):(\d{2})$")


def hours_to_decimal(hours: Union[int, float, str, None]) -> float:
    """
    Convert an hours value to decimal hours.

    Args:
        hours: Number, "H:MM" string or decimal string

    Returns:
        float: Decimal hours, 0 for anything unparseable
    """
    if isinstance(hours, bool) or hours is None:
        return 0.0
    if isinstance(hours, (int, float)):
        return 0.0 if hours != hours else float(hours)  # NaN
    if isinstance(hours, str):
        match = HOURS_MINUTES_PATTERN.match(hours.strip())
        if match:
            return int(match.group(1)) + int(match.group(2)) / 60
        try:
            value = float(hours)
        except ValueError:
            return 0.0
        return 0.0 if value != value else value
    return 0.0


def format_decimal_hours(hours: Union[int, float, str, None]) -> float:
    """Round to two decimals, clearing float noise at four decimals first."""
    value = hours_to_decimal(hours)
    return round(round(value, 4), 2)


def format_simple_time(decimal_hours: Union[int, float, str, None]) -> str:
    """
    Format decimal hours as H:MM.

    Args:
        decimal_hours: Hours value

    Returns:
        str: e.g. "1:30"; "0:00" for negative values or under a minute
    """
    value = hours_to_decimal(decimal_hours)
    if value < 0:
        return "0:00"

    rounded = format_decimal_hours(value)
    if rounded < 1 / 60:
        return "0:00"

    whole = int(rounded)
    minutes = round((rounded - whole) * 60)
    minutes = min(minutes, 59)
    return f"{whole}:{minutes:02d}"
