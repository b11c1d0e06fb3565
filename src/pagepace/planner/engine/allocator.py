"""Initial page allocation over a plan's date range."""

import math
from datetime import date
from typing import Sequence

from .dates import enumerate_days, require_range
from .errors import InvalidPagesError
from .schemas import ReadingOption

PRESET_DAYS = (7, 14, 21, 30, 60, 90)


def split_evenly(pages: int, days: Sequence[date]) -> dict[date, int]:
    """Split whole pages across days, extra pages going to the earliest days.

    Args:
        pages: Non-negative page count to spread
        days: Days in ascending order

    Returns:
        Mapping of day to pages, summing to ``pages`` when days is non-empty
    """
    if not days:
        return {}
    base, remainder = divmod(pages, len(days))
    return {day: base + (1 if index < remainder else 0) for index, day in enumerate(days)}


def allocate(total_pages: int, start: date, end: date) -> dict[date, int]:
    """Compute the initial per-day target for a new plan.

    Args:
        total_pages: Pages in the book, must be positive
        start: First day of the plan
        end: Last day of the plan, inclusive

    Returns:
        Ordered mapping of every day in range to its planned pages

    Raises:
        InvalidRangeError: If the range is empty
        InvalidPagesError: If total_pages is not positive
    """
    require_range(start, end)
    if total_pages <= 0:
        raise InvalidPagesError(f"Total pages must be positive, got {total_pages}")
    return split_evenly(total_pages, enumerate_days(start, end))


def generate_reading_options(
    total_pages: int,
    presets: Sequence[int] = PRESET_DAYS,
) -> list[ReadingOption]:
    """Suggest plan lengths with their daily page load.

    Rounds up so that reading the suggested amount every day finishes
    the book within the period.
    """
    if total_pages <= 0:
        raise InvalidPagesError(f"Total pages must be positive, got {total_pages}")
    return [
        ReadingOption(days=days, pages_per_day=math.ceil(total_pages / days))
        for days in presets
        if days > 0
    ]
