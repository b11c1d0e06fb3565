"""Client-side synchronization helpers for plan state."""

from .cache import PendingDelta, PlanCache

__all__ = [
    "PendingDelta",
    "PlanCache",
]
