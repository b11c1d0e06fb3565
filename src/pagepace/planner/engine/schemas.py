"""Pydantic types passed in and out of the scheduling engine."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .errors import InconsistentStateError


class DayStatus(str, Enum):
    """Disposition of a single day in a plan."""

    UNSET = "unset"
    READ = "read"
    MISSED = "missed"


class ReportKind(str, Enum):
    """Outcome of a progress evaluation."""

    ON_TRACK = "on_track"
    CATCH_UP = "catch_up"
    OVERDUE = "overdue"


# ============================================================================
# Day Records
# ============================================================================


class DaySessionRecord(BaseModel):
    """One calendar day of a reading plan."""

    model_config = {"frozen": True}

    day: date
    status: DayStatus = DayStatus.UNSET
    planned_pages: int = Field(default=0, ge=0)
    actual_pages: Optional[int] = Field(default=None, ge=0)

    @property
    def is_open(self) -> bool:
        """Check if the day still takes a computed target."""
        return self.status == DayStatus.UNSET

    @property
    def effective_pages(self) -> int:
        """Pages this day counts toward progress when read."""
        if self.actual_pages is not None:
            return self.actual_pages
        return self.planned_pages

    @classmethod
    def from_flags(
        cls,
        day: date,
        is_read: bool,
        is_missed: bool,
        planned_pages: int = 0,
        actual_pages: Optional[int] = None,
        last_transition: Optional[DayStatus] = None,
    ) -> tuple["DaySessionRecord", Optional[InconsistentStateError]]:
        """Build a record from separate read/missed flags.

        Stores that keep two booleans can hold a day that is both read and
        missed. The most recent transition wins; without one, missed wins
        because the store applies the missed flag last.

        Args:
            day: Calendar day
            is_read: Read flag from the store
            is_missed: Missed flag from the store
            planned_pages: Current target for the day
            actual_pages: Pages actually read, if recorded
            last_transition: Status most recently applied, if known

        Returns:
            Tuple of the record and the anomaly found (or None)
        """
        anomaly = None
        if is_read and is_missed:
            status = last_transition if last_transition in (DayStatus.READ, DayStatus.MISSED) else DayStatus.MISSED
            anomaly = InconsistentStateError(
                f"Day {day} is marked both read and missed; keeping {status.value}",
                day=day,
            )
        elif is_read:
            status = DayStatus.READ
        elif is_missed:
            status = DayStatus.MISSED
        else:
            status = DayStatus.UNSET

        record = cls(
            day=day,
            status=status,
            planned_pages=max(0, planned_pages),
            actual_pages=actual_pages if status == DayStatus.READ else None,
        )
        return record, anomaly


class StatusChange(BaseModel):
    """Result of clearing a day's old status and applying a new one."""

    updated_day: DaySessionRecord
    open_days_before: list[date]
    records: list[DaySessionRecord]


class TransitionResult(BaseModel):
    """A status change together with the redistribution it triggered."""

    updated_day: DaySessionRecord
    writes: dict[date, int]
    records: list[DaySessionRecord]
    anomalies: list[str] = Field(default_factory=list)


# ============================================================================
# Planning Analytics
# ============================================================================


class ReadingOption(BaseModel):
    """A candidate plan length with its daily page load."""

    days: int
    pages_per_day: int


class ProgressReport(BaseModel):
    """Actual vs. expected progress as of a given day."""

    kind: ReportKind
    total_pages: int
    total_pages_read: int
    expected_today: int
    remaining_pages: int
    remaining_days: int
    explicit_missed: int
    implicit_past_unread: int
    suggested_pages: Optional[int] = None

    @property
    def needs_catch_up(self) -> bool:
        """Check if the reader is behind or past the deadline."""
        return self.kind != ReportKind.ON_TRACK

    @property
    def missed_days(self) -> int:
        """Explicitly missed plus past days left unread."""
        return self.explicit_missed + self.implicit_past_unread

    @property
    def progress_percentage(self) -> float:
        """Share of the plan already read, capped at 100."""
        if self.total_pages <= 0:
            return 0.0
        return min(100.0, self.total_pages_read / self.total_pages * 100)

    @property
    def message(self) -> str:
        """Short human-readable summary."""
        if self.kind == ReportKind.OVERDUE:
            return (
                f"You have {self.remaining_pages} pages remaining "
                "and the reading period has ended."
            )
        if self.kind == ReportKind.CATCH_UP:
            return (
                f"You've missed {self.missed_days} day(s). "
                f"To catch up, read {self.suggested_pages} pages today."
            )
        return "You're on track."
