"""Exceptions raised by the scheduling engine."""

from datetime import date
from typing import Optional


class PlanningError(ValueError):
    """Base error for invalid scheduling input."""


class InvalidRangeError(PlanningError):
    """Date range is empty, reversed, or a day falls outside it."""


class InvalidPagesError(PlanningError):
    """Page counts are out of bounds."""


class InconsistentStateError(PlanningError):
    """Day records contradict each other or the plan.

    The engine never raises this. Instances are collected while normalizing
    input and handed back to the caller so the anomaly can be surfaced.
    """

    def __init__(self, message: str, day: Optional[date] = None):
        super().__init__(message)
        self.day = day
