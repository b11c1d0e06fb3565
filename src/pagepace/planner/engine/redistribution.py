"""Day status transitions and page redistribution.

Every status change is "clear old, apply new" followed by a full
redistribution of the remaining pages across the days still open. The
result depends only on the final set of statuses, never on the order the
changes were made in.
"""

from datetime import date
from typing import Iterable, Optional

from loguru import logger

from .allocator import split_evenly
from .dates import enumerate_days, in_range, require_range
from .errors import InconsistentStateError, InvalidPagesError, InvalidRangeError
from .schemas import DaySessionRecord, DayStatus, StatusChange, TransitionResult


def normalize_records(
    records: Iterable[DaySessionRecord],
    start: date,
    end: date,
) -> tuple[list[DaySessionRecord], list[InconsistentStateError]]:
    """Drop records the plan cannot own and collapse duplicate days.

    Args:
        records: Day records as loaded from the store
        start: First day of the plan
        end: Last day of the plan

    Returns:
        Tuple of (records sorted by day, anomalies found)
    """
    by_day: dict[date, DaySessionRecord] = {}
    anomalies: list[InconsistentStateError] = []

    for record in records:
        if not in_range(record.day, start, end):
            anomalies.append(InconsistentStateError(
                f"Day {record.day} is outside the plan range {start} to {end}; ignoring it",
                day=record.day,
            ))
            continue
        if record.day in by_day:
            anomalies.append(InconsistentStateError(
                f"Day {record.day} appears more than once; keeping the last record",
                day=record.day,
            ))
        by_day[record.day] = record

    for anomaly in anomalies:
        logger.warning("Inconsistent day record: {}", anomaly)

    return [by_day[day] for day in sorted(by_day)], anomalies


def set_status(
    records: Iterable[DaySessionRecord],
    day: date,
    new_status: DayStatus,
    actual_pages: Optional[int] = None,
) -> StatusChange:
    """Move one day to a new status.

    Any transition, including read to missed and back, clears the old
    status first and then applies the new one.

    Args:
        records: Current day records of the plan
        day: Day to change
        new_status: Status to apply
        actual_pages: Pages actually read; only valid with READ

    Returns:
        StatusChange with the updated day and the full record list

    Raises:
        InvalidPagesError: If actual_pages is negative or given for a non-read status
    """
    new_status = DayStatus(new_status)
    if actual_pages is not None:
        if actual_pages < 0:
            raise InvalidPagesError(f"Actual pages cannot be negative, got {actual_pages}")
        if new_status != DayStatus.READ:
            raise InvalidPagesError("Actual pages can only be recorded on a read day")

    by_day = {record.day: record for record in records}
    open_days_before = sorted(d for d, record in by_day.items() if record.is_open)

    current = by_day.get(day) or DaySessionRecord(day=day)
    cleared = current.model_copy(update={"status": DayStatus.UNSET, "actual_pages": None})
    updated = cleared.model_copy(update={
        "status": new_status,
        "actual_pages": actual_pages if new_status == DayStatus.READ else None,
    })
    by_day[day] = updated

    return StatusChange(
        updated_day=updated,
        open_days_before=open_days_before,
        records=[by_day[d] for d in sorted(by_day)],
    )


def redistribute(
    records: Iterable[DaySessionRecord],
    total_pages: int,
    start: date,
    end: date,
) -> dict[date, int]:
    """Spread the pages not yet read across the open days.

    Missed days drop out of the divisor without giving their pages back, so
    the remaining schedule absorbs them. Days with no record are open with
    a current target of zero.

    Args:
        records: Current day records of the plan
        total_pages: Pages in the book
        start: First day of the plan
        end: Last day of the plan

    Returns:
        New planned pages for the days whose target changed

    Raises:
        InvalidRangeError: If the range is empty
        InvalidPagesError: If total_pages is not positive
    """
    require_range(start, end)
    if total_pages <= 0:
        raise InvalidPagesError(f"Total pages must be positive, got {total_pages}")

    normalized, _ = normalize_records(records, start, end)
    by_day = {record.day: record for record in normalized}

    accounted = sum(r.effective_pages for r in normalized if r.status == DayStatus.READ)
    remaining = max(0, total_pages - accounted)

    open_days = [
        day for day in enumerate_days(start, end)
        if day not in by_day or by_day[day].is_open
    ]
    if not open_days:
        logger.debug("No open days left; {} pages unallocated", remaining)
        return {}

    targets = split_evenly(remaining, open_days)
    writes = {
        day: pages for day, pages in targets.items()
        if (by_day[day].planned_pages if day in by_day else 0) != pages
    }

    logger.debug(
        "Redistributed {} pages over {} open days ({} changed)",
        remaining,
        len(open_days),
        len(writes),
    )
    return writes


def apply_writes(
    records: Iterable[DaySessionRecord],
    writes: dict[date, int],
) -> list[DaySessionRecord]:
    """Return records with new planned pages applied, creating missing days."""
    by_day = {record.day: record for record in records}
    for day, pages in writes.items():
        if day in by_day:
            by_day[day] = by_day[day].model_copy(update={"planned_pages": pages})
        else:
            by_day[day] = DaySessionRecord(day=day, planned_pages=pages)
    return [by_day[d] for d in sorted(by_day)]


def apply_transition(
    records: Iterable[DaySessionRecord],
    total_pages: int,
    start: date,
    end: date,
    day: date,
    new_status: DayStatus,
    actual_pages: Optional[int] = None,
) -> TransitionResult:
    """Change one day's status and rebalance the plan in a single step.

    Validation happens before anything is computed, so an invalid call
    never yields a partial result.

    Raises:
        InvalidRangeError: If the range is empty or day is outside it
        InvalidPagesError: If page counts are invalid
    """
    require_range(start, end)
    if not in_range(day, start, end):
        raise InvalidRangeError(f"Day {day} is outside the plan range {start} to {end}")
    if total_pages <= 0:
        raise InvalidPagesError(f"Total pages must be positive, got {total_pages}")

    normalized, anomalies = normalize_records(records, start, end)
    change = set_status(normalized, day, new_status, actual_pages)
    writes = redistribute(change.records, total_pages, start, end)
    final = apply_writes(change.records, writes)

    updated_day = next(record for record in final if record.day == day)
    return TransitionResult(
        updated_day=updated_day,
        writes=writes,
        records=final,
        anomalies=[str(anomaly) for anomaly in anomalies],
    )
