"""Pydantic schemas for reading plans and day sessions."""

from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..engine.schemas import DayStatus


class ReadingMode(str, Enum):
    """How the plan's date range was chosen."""

    CALENDAR = "calendar"
    FIXED_DAYS = "fixed-days"


# ============================================================================
# Reading Plan Schemas
# ============================================================================


class ReadingPlanCreate(BaseModel):
    """Schema for creating a reading plan.

    Give either an end date or a number of days to read.
    """

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    total_pages: int = Field(..., ge=1)
    start_date: date
    end_date: Optional[date] = None
    days_to_read: Optional[int] = Field(None, ge=1)
    reading_mode: ReadingMode = ReadingMode.CALENDAR


class ReadingPlanUpdate(BaseModel):
    """Schema for updating a reading plan."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=1)


class ReadingPlanResponse(BaseModel):
    """Response schema for a reading plan."""

    id: UUID
    name: str
    description: Optional[str]
    total_pages: int
    start_date: date
    end_date: date
    reading_mode: ReadingMode
    days_to_read: Optional[int]
    version: int
    is_archived: bool
    total_days: int
    pages_read: int
    progress_percentage: float
    days_remaining: int
    created_at: str
    updated_at: Optional[str]

    model_config = {"from_attributes": True}


# ============================================================================
# Day Session Schemas
# ============================================================================


class DaySessionResponse(BaseModel):
    """Response schema for one day of a plan."""

    date: date
    status: DayStatus
    planned_pages: int
    actual_pages: Optional[int]
    effective_pages: int

    model_config = {"from_attributes": True}


class StatusUpdateResponse(BaseModel):
    """Outcome of a committed status change."""

    plan_id: UUID
    version: int
    day: DaySessionResponse
    changed_days: dict[date, int]
    anomalies: list[str] = Field(default_factory=list)


class AllocationAuditResponse(BaseModel):
    """Pages abandoned when a day was marked missed."""

    date: date
    lost_pages: int
    plan_version: int
    recorded_at: str

    model_config = {"from_attributes": True}
