"""Calendar arithmetic for reading plans.

All values are plain ``datetime.date`` objects. Inputs are treated as
already-local calendar days, so there is no time-of-day or timezone logic.
"""

import calendar
from datetime import date, timedelta

from .errors import InvalidRangeError

DATE_KEY_FORMAT = "%Y-%m-%d"

MONTHS = [name for name in calendar.month_name if name]


def enumerate_days(start: date, end: date) -> list[date]:
    """List every day from start through end, inclusive.

    Args:
        start: First day of the range
        end: Last day of the range

    Returns:
        Ascending list of days, empty when end is before start
    """
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def day_count(start: date, end: date) -> int:
    """Number of days in the inclusive range."""
    if end < start:
        return 0
    return (end - start).days + 1


def in_range(day: date, start: date, end: date) -> bool:
    """Check whether a day falls inside the inclusive range."""
    return start <= day <= end


def format_date_key(day: date) -> str:
    """Format a day as its storage key (YYYY-MM-DD)."""
    return day.strftime(DATE_KEY_FORMAT)


def parse_date_key(key: str) -> date:
    """Parse a YYYY-MM-DD storage key.

    Raises:
        InvalidRangeError: If the key is not a valid date
    """
    try:
        return date.fromisoformat(key)
    except (TypeError, ValueError) as e:
        raise InvalidRangeError(f"Invalid date key: {key!r}") from e


def require_range(start: date, end: date) -> int:
    """Validate a plan range and return its length.

    Raises:
        InvalidRangeError: If the range holds no days
    """
    count = day_count(start, end)
    if count == 0:
        raise InvalidRangeError(f"End date {end} is before start date {start}")
    return count


def _month_index(month: str) -> int:
    try:
        return MONTHS.index(month.strip().capitalize()) + 1
    except ValueError:
        raise InvalidRangeError(f"Invalid month: {month}") from None


def month_range(
    start_month: str,
    start_year: int,
    end_month: str,
    end_year: int,
) -> tuple[date, date]:
    """Resolve a month span to concrete dates.

    Args:
        start_month: English month name, e.g. "January"
        start_year: Year of the start month
        end_month: English month name
        end_year: Year of the end month

    Returns:
        First day of the start month and last day of the end month

    Raises:
        InvalidRangeError: If a month name is unknown or the span is reversed
    """
    start = date(start_year, _month_index(start_month), 1)
    end_index = _month_index(end_month)
    _, last_day = calendar.monthrange(end_year, end_index)
    end = date(end_year, end_index, last_day)
    require_range(start, end)
    return start, end


def fixed_days_range(start: date, days: int) -> tuple[date, date]:
    """Range covering a fixed number of days from start."""
    if days < 1:
        raise InvalidRangeError(f"A plan needs at least one day, got {days}")
    return start, start + timedelta(days=days - 1)
