"""Adaptive reading-schedule engine.

Pure functions over a plan's day records. Nothing here persists state or
reads the clock; callers pass "today" explicitly and apply the returned
writes themselves.
"""

from .allocator import allocate, generate_reading_options, split_evenly
from .dates import (
    day_count,
    enumerate_days,
    fixed_days_range,
    format_date_key,
    in_range,
    month_range,
    parse_date_key,
)
from .errors import (
    InconsistentStateError,
    InvalidPagesError,
    InvalidRangeError,
    PlanningError,
)
from .progress import effective_pages, evaluate, pages_read
from .redistribution import (
    apply_transition,
    apply_writes,
    normalize_records,
    redistribute,
    set_status,
)
from .schemas import (
    DaySessionRecord,
    DayStatus,
    ProgressReport,
    ReadingOption,
    ReportKind,
    StatusChange,
    TransitionResult,
)

__all__ = [
    # Calendar
    "enumerate_days",
    "day_count",
    "in_range",
    "format_date_key",
    "parse_date_key",
    "month_range",
    "fixed_days_range",
    # Allocation
    "allocate",
    "split_evenly",
    "generate_reading_options",
    # Redistribution
    "set_status",
    "redistribute",
    "apply_transition",
    "apply_writes",
    "normalize_records",
    # Progress
    "evaluate",
    "effective_pages",
    "pages_read",
    # Types
    "DayStatus",
    "DaySessionRecord",
    "StatusChange",
    "TransitionResult",
    "ReportKind",
    "ProgressReport",
    "ReadingOption",
    # Errors
    "PlanningError",
    "InvalidRangeError",
    "InvalidPagesError",
    "InconsistentStateError",
]
