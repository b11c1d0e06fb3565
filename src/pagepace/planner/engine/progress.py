"""Progress and catch-up evaluation.

Compares pages actually read against what the current schedule expected
by a given day, and suggests a daily target when the reader is behind.
"""

import math
from datetime import date, timedelta
from typing import Iterable

from .dates import day_count, enumerate_days, require_range
from .errors import InvalidPagesError
from .redistribution import normalize_records
from .schemas import DaySessionRecord, DayStatus, ProgressReport, ReportKind


def effective_pages(record: DaySessionRecord) -> int:
    """Pages a day counts toward progress (zero unless read)."""
    if record.status != DayStatus.READ:
        return 0
    return record.effective_pages


def pages_read(records: Iterable[DaySessionRecord]) -> int:
    """Total effective pages over read days."""
    return sum(effective_pages(record) for record in records)


def evaluate(
    records: Iterable[DaySessionRecord],
    total_pages: int,
    start: date,
    end: date,
    today: date,
) -> ProgressReport:
    """Evaluate a plan's progress as of today.

    Args:
        records: Current day records of the plan
        total_pages: Pages in the book
        start: First day of the plan
        end: Last day of the plan
        today: The caller's current calendar day

    Returns:
        ProgressReport describing whether the reader is on track, behind,
        or past the end of the plan

    Raises:
        InvalidRangeError: If the range is empty
        InvalidPagesError: If total_pages is not positive
    """
    require_range(start, end)
    if total_pages <= 0:
        raise InvalidPagesError(f"Total pages must be positive, got {total_pages}")

    normalized, _ = normalize_records(records, start, end)
    by_day = {record.day: record for record in normalized}

    total_pages_read = pages_read(normalized)

    expected_today = sum(
        by_day[day].planned_pages
        for day in enumerate_days(start, min(end, today))
        if day in by_day
    )

    explicit_missed = 0
    implicit_past_unread = 0
    for day in enumerate_days(start, min(end, today - timedelta(days=1))):
        record = by_day.get(day)
        if record is None or record.status == DayStatus.UNSET:
            implicit_past_unread += 1
        elif record.status == DayStatus.MISSED:
            explicit_missed += 1

    remaining_pages = max(0, total_pages - total_pages_read)
    remaining_days = day_count(max(today, start), end)

    # Missed days keep their old targets, so expected_today can exceed
    # total_pages; a finished book is on track regardless.
    if remaining_pages == 0:
        kind = ReportKind.ON_TRACK
        suggested_pages = None
    elif remaining_days == 0:
        kind = ReportKind.OVERDUE
        suggested_pages = remaining_pages
    elif total_pages_read >= expected_today:
        kind = ReportKind.ON_TRACK
        suggested_pages = None
    else:
        kind = ReportKind.CATCH_UP
        suggested_pages = math.ceil(remaining_pages / remaining_days)

    return ProgressReport(
        kind=kind,
        total_pages=total_pages,
        total_pages_read=total_pages_read,
        expected_today=expected_today,
        remaining_pages=remaining_pages,
        remaining_days=remaining_days,
        explicit_missed=explicit_missed,
        implicit_past_unread=implicit_past_unread,
        suggested_pages=suggested_pages,
    )
