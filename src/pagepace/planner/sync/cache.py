"""Optimistic read-through cache of plan day records.

Status changes are shown immediately by layering a pending delta over the
last authoritative snapshot. Each delta carries the plan version it expects
the store to reach once the write commits. Confirmed state always wins:
deltas at or below a confirmed version are discarded, and a confirmation
older than the one already held is ignored.
"""

import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from loguru import logger

from ..engine import DaySessionRecord, DayStatus, TransitionResult, apply_transition


@dataclass
class PendingDelta:
    """Records changed by one optimistic write."""

    version: int
    records: dict[date, DaySessionRecord] = field(default_factory=dict)


@dataclass
class _PlanEntry:
    version: int = 0
    records: dict[date, DaySessionRecord] = field(default_factory=dict)
    pending: list[PendingDelta] = field(default_factory=list)


class PlanCache:
    """Per-plan cache of day records with optimistic deltas."""

    def __init__(self):
        self._plans: dict[str, _PlanEntry] = {}
        self._lock = threading.Lock()

    # Helpers below expect self._lock to be held

    def _entry(self, plan_id) -> _PlanEntry:
        return self._plans.setdefault(str(plan_id), _PlanEntry())

    def _merged(self, entry: _PlanEntry) -> list[DaySessionRecord]:
        merged = dict(entry.records)
        for delta in entry.pending:
            merged.update(delta.records)
        return [merged[day] for day in sorted(merged)]

    def _push(self, entry: _PlanEntry, records: Iterable[DaySessionRecord]) -> int:
        latest = entry.pending[-1].version if entry.pending else entry.version
        delta = PendingDelta(
            version=latest + 1,
            records={record.day: record for record in records},
        )
        entry.pending.append(delta)
        return delta.version

    def confirm(
        self,
        plan_id,
        records: Iterable[DaySessionRecord],
        version: int,
    ) -> bool:
        """Install authoritative records fetched at a given plan version.

        Args:
            plan_id: Plan identifier
            records: Every stored day of the plan
            version: Plan version the records were read at

        Returns:
            False if the snapshot is older than the one already held
        """
        with self._lock:
            entry = self._entry(plan_id)
            if version < entry.version:
                logger.debug(
                    "Ignoring stale snapshot of plan {} (v{} < v{})",
                    plan_id,
                    version,
                    entry.version,
                )
                return False

            entry.version = version
            entry.records = {record.day: record for record in records}
            superseded = [d for d in entry.pending if d.version <= version]
            entry.pending = [d for d in entry.pending if d.version > version]
            if superseded:
                logger.debug(
                    "Dropped {} superseded deltas for plan {}", len(superseded), plan_id
                )
            return True

    def apply_optimistic(
        self,
        plan_id,
        records: Iterable[DaySessionRecord],
    ) -> int:
        """Layer changed records over the current view.

        Returns:
            The plan version this delta expects once committed
        """
        with self._lock:
            return self._push(self._entry(plan_id), records)

    def rollback(self, plan_id, version: int) -> int:
        """Discard a failed delta and every delta stacked on top of it.

        Later deltas were computed from a view that included the failed
        one, so they are dropped too and must be recomputed.

        Returns:
            Number of deltas discarded
        """
        with self._lock:
            entry = self._entry(plan_id)
            kept = [d for d in entry.pending if d.version < version]
            dropped = len(entry.pending) - len(kept)
            entry.pending = kept
            if dropped:
                logger.info(
                    "Rolled back {} optimistic deltas for plan {} from v{}",
                    dropped,
                    plan_id,
                    version,
                )
            return dropped

    def view(self, plan_id) -> list[DaySessionRecord]:
        """Authoritative records with pending deltas applied in order."""
        with self._lock:
            return self._merged(self._entry(plan_id))

    def version(self, plan_id) -> int:
        """Last confirmed version of a plan."""
        with self._lock:
            return self._entry(plan_id).version

    def pending(self, plan_id) -> list[PendingDelta]:
        """Deltas not yet confirmed, oldest first."""
        with self._lock:
            return list(self._entry(plan_id).pending)

    def stage_transition(
        self,
        plan_id,
        total_pages: int,
        start: date,
        end: date,
        day: date,
        status: DayStatus,
        actual_pages: Optional[int] = None,
    ) -> tuple[int, TransitionResult]:
        """Compute a status change on the current view and apply it optimistically.

        The view is read and the delta appended under one lock acquisition.

        Returns:
            Tuple of (expected version, transition result)
        """
        with self._lock:
            entry = self._entry(plan_id)
            result = apply_transition(
                self._merged(entry), total_pages, start, end, day, status, actual_pages
            )
            changed = {day} | set(result.writes)
            version = self._push(
                entry, (record for record in result.records if record.day in changed)
            )
            return version, result

    def invalidate(self, plan_id) -> None:
        """Forget everything held for a plan."""
        with self._lock:
            self._plans.pop(str(plan_id), None)
