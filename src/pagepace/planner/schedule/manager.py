"""Manager for reading plans and their day sessions.

The manager is the persistence collaborator around the scheduling engine.
Each status change runs as one transaction: load the authoritative state,
clear the old status, apply the new one, redistribute, write, bump the
plan version, commit. A failure anywhere rolls back every write, so a
half-applied redistribution is never stored.
"""

import threading
from datetime import date, datetime
from typing import Callable, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy.orm import Session

from ..db.sqlite import Database
from ..engine import (
    DaySessionRecord,
    DayStatus,
    ProgressReport,
    allocate,
    apply_transition,
    day_count,
    evaluate,
    fixed_days_range,
    format_date_key,
    pages_read,
    redistribute,
)
from ..engine.dates import require_range
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


class ScheduleError(Exception):
    """Base error for schedule persistence problems."""


class PlanNotFoundError(ScheduleError):
    """No plan exists with the given ID."""


class StaleVersionError(ScheduleError):
    """The plan changed since the caller last read it."""

    def __init__(self, plan_id: UUID, expected: int, actual: int):
        super().__init__(
            f"Plan {plan_id} is at version {actual}, expected {expected}"
        )
        self.expected = expected
        self.actual = actual


# Writes are serialized per plan, shared by every manager in the process
_plan_locks: dict[str, threading.Lock] = {}
_plan_locks_guard = threading.Lock()


def _lock_for(plan_id: str) -> threading.Lock:
    with _plan_locks_guard:
        return _plan_locks.setdefault(plan_id, threading.Lock())


def _forget_lock(plan_id: str) -> None:
    """Drop the lock of a plan that no longer exists."""
    with _plan_locks_guard:
        _plan_locks.pop(plan_id, None)


class ScheduleManager:
    """Manager for reading plans and day-status changes."""

    def __init__(self, db: Database, clock: Callable[[], date] = date.today):
        """Initialize the schedule manager.

        Args:
            db: Database instance
            clock: Provides "today" for progress and deadlines
        """
        self.db = db
        self.clock = clock

    # ========================================================================
    # Reading Plan CRUD
    # ========================================================================

    def create_plan(self, plan_data: ReadingPlanCreate) -> ReadingPlanResponse:
        """Create a plan and seed a day session for every day in range.

        Args:
            plan_data: Plan creation data

        Returns:
            Created plan response

        Raises:
            InvalidRangeError: If the range is empty or underspecified
        """
        start = plan_data.start_date
        end = plan_data.end_date
        if end is None and plan_data.days_to_read is not None:
            start, end = fixed_days_range(start, plan_data.days_to_read)
        if end is None:
            end = start
        distribution = allocate(plan_data.total_pages, start, end)

        with self.db.get_session() as session:
            plan = ReadingPlan(
                name=plan_data.name,
                description=plan_data.description,
                total_pages=plan_data.total_pages,
                start_date=start.isoformat(),
                end_date=end.isoformat(),
                reading_mode=plan_data.reading_mode.value,
                days_to_read=plan_data.days_to_read,
                version=0,
            )
            session.add(plan)
            session.flush()

            session.add_all(
                DaySession(
                    plan_id=plan.id,
                    date=format_date_key(day),
                    status=DayStatus.UNSET.value,
                    planned_pages=pages,
                )
                for day, pages in distribution.items()
            )
            session.flush()
            session.refresh(plan)

            logger.info(
                "Created plan {} ({} pages, {} to {})",
                plan.id,
                plan.total_pages,
                start,
                end,
            )
            return self._plan_to_response(plan)

    def get_plan(self, plan_id: UUID) -> Optional[ReadingPlanResponse]:
        """Get a reading plan by ID.

        Args:
            plan_id: Plan UUID

        Returns:
            Plan response or None
        """
        with self.db.get_session() as session:
            plan = session.get(ReadingPlan, str(plan_id))
            if not plan:
                return None
            return self._plan_to_response(plan)

    def get_all_plans(self, include_archived: bool = False) -> list[ReadingPlanResponse]:
        """Get reading plans, newest first.

        Args:
            include_archived: Also return archived plans

        Returns:
            List of plan responses
        """
        with self.db.get_session() as session:
            query = session.query(ReadingPlan)
            if not include_archived:
                query = query.filter(ReadingPlan.is_archived == False)  # noqa: E712
            plans = query.order_by(ReadingPlan.created_at.desc()).all()
            return [self._plan_to_response(plan) for plan in plans]

    def get_archived_plans(self) -> list[ReadingPlanResponse]:
        """Get only archived plans, newest first."""
        with self.db.get_session() as session:
            plans = (
                session.query(ReadingPlan)
                .filter(ReadingPlan.is_archived == True)  # noqa: E712
                .order_by(ReadingPlan.created_at.desc())
                .all()
            )
            return [self._plan_to_response(plan) for plan in plans]

    def archive_plan(self, plan_id: UUID) -> Optional[ReadingPlanResponse]:
        """Hide a plan from the default listing. Its days are kept."""
        return self._set_archived(plan_id, True)

    def unarchive_plan(self, plan_id: UUID) -> Optional[ReadingPlanResponse]:
        """Return an archived plan to the default listing."""
        return self._set_archived(plan_id, False)

    def update_plan(
        self, plan_id: UUID, update_data: ReadingPlanUpdate
    ) -> Optional[ReadingPlanResponse]:
        """Update a reading plan.

        Changing total_pages rebalances only the days still open; read and
        missed days keep their recorded pages.

        Args:
            plan_id: Plan UUID
            update_data: Update data

        Returns:
            Updated plan response or None
        """
        with _lock_for(str(plan_id)), self.db.get_session() as session:
            plan = session.get(ReadingPlan, str(plan_id))
            if not plan:
                _forget_lock(str(plan_id))
                return None

            if update_data.name is not None:
                plan.name = update_data.name
            if update_data.description is not None:
                plan.description = update_data.description
            if update_data.total_pages is not None and update_data.total_pages != plan.total_pages:
                plan.total_pages = update_data.total_pages
                rows = self._load_rows(session, plan)
                writes = redistribute(
                    [row.to_record() for row in rows.values()],
                    plan.total_pages,
                    plan.start,
                    plan.end,
                )
                self._write_planned_pages(session, plan, rows, writes)
                logger.info(
                    "Plan {} total pages set to {}; {} days rebalanced",
                    plan.id,
                    plan.total_pages,
                    len(writes),
                )

            self._touch_plan(plan)
            session.flush()
            session.refresh(plan)

            return self._plan_to_response(plan)

    def delete_plan(self, plan_id: UUID) -> bool:
        """Delete a reading plan and all its days.

        Args:
            plan_id: Plan UUID

        Returns:
            True if deleted
        """
        key = str(plan_id)
        with _lock_for(key):
            with self.db.get_session() as session:
                plan = session.get(ReadingPlan, key)
                deleted = plan is not None
                if deleted:
                    session.delete(plan)
            _forget_lock(key)

        if deleted:
            logger.info("Deleted plan {}", plan_id)
        return deleted

    # ========================================================================
    # Day Sessions
    # ========================================================================

    def get_days(self, plan_id: UUID) -> list[DaySessionResponse]:
        """Get every stored day of a plan in date order."""
        return [self._record_to_response(r) for r in self.get_records(plan_id)]

    def get_records(self, plan_id: UUID) -> list[DaySessionRecord]:
        """Get the plan's days as engine records."""
        with self.db.get_session() as session:
            rows = (
                session.query(DaySession)
                .filter(DaySession.plan_id == str(plan_id))
                .order_by(DaySession.date)
                .all()
            )
            return [row.to_record() for row in rows]

    def set_day_status(
        self,
        plan_id: UUID,
        day: date,
        status: DayStatus,
        actual_pages: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> StatusUpdateResponse:
        """Change a day's status and rebalance the plan atomically.

        Args:
            plan_id: Plan UUID
            day: Day to change
            status: New status
            actual_pages: Pages actually read, for READ only
            expected_version: Plan version the caller computed against; the
                change is rejected if the plan has moved on since

        Returns:
            The committed day, the other days whose targets changed, and the
            new plan version

        Raises:
            PlanNotFoundError: If the plan does not exist
            StaleVersionError: If expected_version is out of date
            PlanningError: If the day or page count is invalid
        """
        with _lock_for(str(plan_id)), self.db.get_session() as session:
            plan = session.get(ReadingPlan, str(plan_id))
            if not plan:
                _forget_lock(str(plan_id))
                raise PlanNotFoundError(f"Plan not found: {plan_id}")
            if expected_version is not None and plan.version != expected_version:
                raise StaleVersionError(plan_id, expected_version, plan.version)

            rows = self._load_rows(session, plan)
            previous = rows[day].to_record() if day in rows else DaySessionRecord(day=day)

            result = apply_transition(
                [row.to_record() for row in rows.values()],
                plan.total_pages,
                plan.start,
                plan.end,
                day,
                status,
                actual_pages,
            )

            updated = result.updated_day
            row = rows.get(day)
            if row is None:
                row = DaySession(plan_id=plan.id, date=format_date_key(day))
                session.add(row)
                rows[day] = row
            row.status = updated.status.value
            row.planned_pages = updated.planned_pages
            row.actual_pages = updated.actual_pages
            row.updated_at = datetime.now().isoformat()

            self._write_planned_pages(session, plan, rows, result.writes)

            if (
                updated.status == DayStatus.MISSED
                and previous.status != DayStatus.MISSED
                and previous.planned_pages > 0
            ):
                self._record_lost_allocation(session, plan, day, previous.planned_pages)

            self._touch_plan(plan)
            session.flush()

            logger.info(
                "Plan {} day {} -> {} (version {}, {} days rebalanced)",
                plan.id,
                day,
                updated.status.value,
                plan.version,
                len(result.writes),
            )

            return StatusUpdateResponse(
                plan_id=UUID(plan.id),
                version=plan.version,
                day=self._record_to_response(updated),
                changed_days={d: p for d, p in result.writes.items() if d != day},
                anomalies=result.anomalies,
            )

    def mark_read(
        self,
        plan_id: UUID,
        day: date,
        actual_pages: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> StatusUpdateResponse:
        """Mark a day as read, optionally with the pages actually read."""
        return self.set_day_status(
            plan_id, day, DayStatus.READ, actual_pages, expected_version
        )

    def mark_missed(
        self,
        plan_id: UUID,
        day: date,
        expected_version: Optional[int] = None,
    ) -> StatusUpdateResponse:
        """Mark a day as missed."""
        return self.set_day_status(
            plan_id, day, DayStatus.MISSED, expected_version=expected_version
        )

    def clear_day(
        self,
        plan_id: UUID,
        day: date,
        expected_version: Optional[int] = None,
    ) -> StatusUpdateResponse:
        """Return a day to the open pool."""
        return self.set_day_status(
            plan_id, day, DayStatus.UNSET, expected_version=expected_version
        )

    # ========================================================================
    # Progress
    # ========================================================================

    def get_progress(
        self, plan_id: UUID, today: Optional[date] = None
    ) -> Optional[ProgressReport]:
        """Evaluate a plan's progress.

        Args:
            plan_id: Plan UUID
            today: Day to evaluate at; defaults to the manager's clock

        Returns:
            Progress report or None if the plan does not exist
        """
        with self.db.get_session() as session:
            plan = session.get(ReadingPlan, str(plan_id))
            if not plan:
                return None
            records = [row.to_record() for row in plan.days]
            return evaluate(
                records,
                plan.total_pages,
                plan.start,
                plan.end,
                today or self.clock(),
            )

    def get_missed_allocations(self, plan_id: UUID) -> list[AllocationAuditResponse]:
        """Get the audit trail of pages abandoned by missed days."""
        with self.db.get_session() as session:
            audits = (
                session.query(AllocationAudit)
                .filter(AllocationAudit.plan_id == str(plan_id))
                .order_by(AllocationAudit.plan_version)
                .all()
            )
            return [
                AllocationAuditResponse(
                    date=date.fromisoformat(audit.date),
                    lost_pages=audit.lost_pages,
                    plan_version=audit.plan_version,
                    recorded_at=audit.recorded_at,
                )
                for audit in audits
            ]

    # ========================================================================
    # Helpers
    # ========================================================================

    def _load_rows(self, session: Session, plan: ReadingPlan) -> dict[date, DaySession]:
        """Load the plan's day rows keyed by day."""
        rows = session.query(DaySession).filter(DaySession.plan_id == plan.id).all()
        return {date.fromisoformat(row.date): row for row in rows}

    def _write_planned_pages(
        self,
        session: Session,
        plan: ReadingPlan,
        rows: dict[date, DaySession],
        writes: dict[date, int],
    ) -> None:
        """Apply redistribution writes, creating rows for days never stored."""
        now = datetime.now().isoformat()
        for day, pages in writes.items():
            row = rows.get(day)
            if row is None:
                row = DaySession(
                    plan_id=plan.id,
                    date=format_date_key(day),
                    status=DayStatus.UNSET.value,
                )
                session.add(row)
                rows[day] = row
            row.planned_pages = pages
            row.updated_at = now

    def _record_lost_allocation(
        self, session: Session, plan: ReadingPlan, day: date, pages: int
    ) -> None:
        session.add(AllocationAudit(
            plan_id=plan.id,
            date=format_date_key(day),
            lost_pages=pages,
            plan_version=plan.version + 1,
        ))
        logger.debug("Day {} of plan {} abandoned {} planned pages", day, plan.id, pages)

    def _set_archived(self, plan_id: UUID, archived: bool) -> Optional[ReadingPlanResponse]:
        with _lock_for(str(plan_id)), self.db.get_session() as session:
            plan = session.get(ReadingPlan, str(plan_id))
            if not plan:
                _forget_lock(str(plan_id))
                return None

            if bool(plan.is_archived) != archived:
                plan.is_archived = archived
                self._touch_plan(plan)
                session.flush()
                logger.info("Plan {} {}", plan.id, "archived" if archived else "unarchived")

            return self._plan_to_response(plan)

    def _touch_plan(self, plan: ReadingPlan) -> None:
        """Bump the plan version as the last write of a transaction."""
        plan.version = (plan.version or 0) + 1
        plan.updated_at = datetime.now().isoformat()

    def _record_to_response(self, record: DaySessionRecord) -> DaySessionResponse:
        return DaySessionResponse(
            date=record.day,
            status=record.status,
            planned_pages=record.planned_pages,
            actual_pages=record.actual_pages,
            effective_pages=record.effective_pages if record.status == DayStatus.READ else 0,
        )

    def _plan_to_response(self, plan: ReadingPlan) -> ReadingPlanResponse:
        """Convert plan model to response."""
        start = plan.start
        end = plan.end
        read = pages_read(row.to_record() for row in plan.days)
        today = self.clock()

        return ReadingPlanResponse(
            id=UUID(plan.id),
            name=plan.name,
            description=plan.description,
            total_pages=plan.total_pages,
            start_date=start,
            end_date=end,
            reading_mode=ReadingMode(plan.reading_mode),
            days_to_read=plan.days_to_read,
            version=plan.version,
            is_archived=bool(plan.is_archived),
            total_days=require_range(start, end),
            pages_read=read,
            progress_percentage=min(100.0, read / plan.total_pages * 100),
            days_remaining=day_count(max(today, start), end),
            created_at=plan.created_at,
            updated_at=plan.updated_at,
        )
