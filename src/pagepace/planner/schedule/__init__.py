"""Schedule module for reading plans and daily progress."""

from .manager import (
    PlanNotFoundError,
    ScheduleError,
    ScheduleManager,
    StaleVersionError,
)
from .models import AllocationAudit, DaySession, ReadingPlan
from .schemas import (
    AllocationAuditResponse,
    DaySessionResponse,
    ReadingMode,
    ReadingPlanCreate,
    ReadingPlanResponse,
    ReadingPlanUpdate,
    StatusUpdateResponse,
)

__all__ = [
    # Manager
    "ScheduleManager",
    # Errors
    "ScheduleError",
    "PlanNotFoundError",
    "StaleVersionError",
    # Models
    "ReadingPlan",
    "DaySession",
    "AllocationAudit",
    # Enums
    "ReadingMode",
    # Plan schemas
    "ReadingPlanCreate",
    "ReadingPlanUpdate",
    "ReadingPlanResponse",
    # Day schemas
    "DaySessionResponse",
    "StatusUpdateResponse",
    "AllocationAuditResponse",
]
