"""Tests for status transitions and page redistribution."""

from datetime import timedelta

import pytest
from loguru import logger

from pagepace.planner.engine.errors import InvalidPagesError, InvalidRangeError
from pagepace.planner.engine.redistribution import (
    apply_transition,
    apply_writes,
    normalize_records,
    redistribute,
    set_status,
)
from pagepace.planner.engine.schemas import DaySessionRecord, DayStatus


def planned(records):
    """Planned pages of every record, in date order."""
    return [r.planned_pages for r in sorted(records, key=lambda r: r.day)]


def conserved(records, total_pages):
    """Check the conservation invariant over a record set."""
    open_pages = sum(r.planned_pages for r in records if r.status == DayStatus.UNSET)
    read_pages = sum(r.effective_pages for r in records if r.status == DayStatus.READ)
    return open_pages + read_pages == total_pages


class TestSetStatus:
    """Tests for the clear-then-apply transition."""

    def test_mark_read(self, ten_day_plan, start):
        """Test marking a day read keeps its planned pages."""
        change = set_status(ten_day_plan, start, DayStatus.READ, 25)

        assert change.updated_day.status == DayStatus.READ
        assert change.updated_day.actual_pages == 25
        assert change.updated_day.planned_pages == 10
        assert len(change.open_days_before) == 10

    def test_read_without_actual_pages(self, ten_day_plan, start):
        """Test reading as planned counts the planned pages."""
        change = set_status(ten_day_plan, start, DayStatus.READ)

        assert change.updated_day.actual_pages is None
        assert change.updated_day.effective_pages == 10

    def test_read_to_missed_clears_actual_pages(self, ten_day_plan, start):
        """Test read -> missed drops the recorded pages."""
        read = set_status(ten_day_plan, start, DayStatus.READ, 30)
        missed = set_status(read.records, start, DayStatus.MISSED)

        assert missed.updated_day.status == DayStatus.MISSED
        assert missed.updated_day.actual_pages is None

    def test_missed_to_read(self, ten_day_plan, start):
        """Test missed -> read is a single call."""
        missed = set_status(ten_day_plan, start, DayStatus.MISSED)
        read = set_status(missed.records, start, DayStatus.READ, 12)

        assert read.updated_day.status == DayStatus.READ
        assert read.updated_day.actual_pages == 12
        assert start not in read.open_days_before

    def test_unset_clears_actual_pages(self, ten_day_plan, start):
        """Test un-marking a read day."""
        read = set_status(ten_day_plan, start, DayStatus.READ, 30)
        cleared = set_status(read.records, start, DayStatus.UNSET)

        assert cleared.updated_day.status == DayStatus.UNSET
        assert cleared.updated_day.actual_pages is None

    def test_accepts_string_status(self, ten_day_plan, start):
        """Test plain status values are accepted."""
        change = set_status(ten_day_plan, start, "missed")
        assert change.updated_day.status == DayStatus.MISSED

    def test_creates_missing_day(self, start):
        """Test a day with no record starts from an empty unset record."""
        change = set_status([], start, DayStatus.READ, 5)

        assert change.open_days_before == []
        assert change.records == [change.updated_day]
        assert change.updated_day.planned_pages == 0

    def test_does_not_mutate_input(self, ten_day_plan, start):
        """Test the caller's records are left alone."""
        before = list(ten_day_plan)
        set_status(ten_day_plan, start, DayStatus.READ, 40)
        assert ten_day_plan == before
        assert ten_day_plan[0].status == DayStatus.UNSET

    def test_negative_actual_pages(self, ten_day_plan, start):
        """Test negative actual pages are rejected."""
        with pytest.raises(InvalidPagesError):
            set_status(ten_day_plan, start, DayStatus.READ, -1)

    @pytest.mark.parametrize("status", [DayStatus.MISSED, DayStatus.UNSET])
    def test_actual_pages_only_on_read(self, ten_day_plan, start, status):
        """Test actual pages cannot be recorded on other statuses."""
        with pytest.raises(InvalidPagesError):
            set_status(ten_day_plan, start, status, 10)


class TestRedistribute:
    """Tests for redistribute()."""

    def test_fresh_plan_needs_no_writes(self, ten_day_plan, start, end):
        """Test an untouched allocation is already balanced."""
        assert redistribute(ten_day_plan, 100, start, end) == {}

    def test_missing_rows_are_open(self, start, end):
        """Test absent days are treated as open with no target."""
        writes = redistribute([], 100, start, end)
        assert list(writes.values()) == [10] * 10

    def test_read_extra_pages_shrinks_targets(self, ten_day_plan, start, end):
        """Test reading ahead lowers every open day's target."""
        change = set_status(ten_day_plan, start, DayStatus.READ, 20)
        writes = redistribute(change.records, 100, start, end)

        assert start not in writes
        assert sorted(writes.values(), reverse=True) == [9] * 8 + [8]
        assert writes[end] == 8

    def test_missed_day_is_not_refunded(self, ten_day_plan, start, end):
        """Test a missed day's pages are spread over the other nine days."""
        change = set_status(ten_day_plan, start, DayStatus.MISSED)
        writes = redistribute(change.records, 100, start, end)
        records = apply_writes(change.records, writes)

        open_days = [r for r in records if r.status == DayStatus.UNSET]
        assert len(open_days) == 9
        assert sum(r.planned_pages for r in open_days) == 100
        assert open_days[0].planned_pages == 12
        assert all(r.planned_pages == 11 for r in open_days[1:])

    def test_missed_day_keeps_its_planned_pages(self, ten_day_plan, start, end):
        """Test the missed day's own target is frozen."""
        change = set_status(ten_day_plan, start, DayStatus.MISSED)
        writes = redistribute(change.records, 100, start, end)
        assert start not in writes

    def test_everything_read(self, ten_day_plan, start, end):
        """Test open days get zero once the book is finished early."""
        change = set_status(ten_day_plan, start, DayStatus.READ, 150)
        writes = redistribute(change.records, 100, start, end)

        assert len(writes) == 9
        assert set(writes.values()) == {0}

    def test_no_open_days(self, ten_day_plan, start, end):
        """Test nothing is written when every day is final."""
        records = [r.model_copy(update={"status": DayStatus.MISSED}) for r in ten_day_plan]
        assert redistribute(records, 100, start, end) == {}

    def test_idempotent(self, ten_day_plan, start, end):
        """Test a second pass with no status change writes nothing."""
        change = set_status(ten_day_plan, start + timedelta(days=3), DayStatus.READ, 33)
        writes = redistribute(change.records, 100, start, end)
        records = apply_writes(change.records, writes)

        assert writes
        assert redistribute(records, 100, start, end) == {}

    def test_ignores_out_of_range_records(self, ten_day_plan, start, end):
        """Test a stray read day outside the plan does not count."""
        stray = DaySessionRecord(
            day=end + timedelta(days=1), status=DayStatus.READ, planned_pages=50
        )
        assert redistribute(ten_day_plan + [stray], 100, start, end) == {}

    def test_rejects_empty_range(self, ten_day_plan, start):
        """Test a reversed range is rejected."""
        with pytest.raises(InvalidRangeError):
            redistribute(ten_day_plan, 100, start, start - timedelta(days=1))

    def test_rejects_non_positive_total(self, ten_day_plan, start, end):
        """Test total pages must be positive."""
        with pytest.raises(InvalidPagesError):
            redistribute(ten_day_plan, 0, start, end)


class TestApplyTransition:
    """Tests for the combined transition-and-rebalance step."""

    def test_unmark_restores_original_targets(self, ten_day_plan, start, end):
        """Test un-marking a read day gives its pages back to the plan."""
        read = apply_transition(ten_day_plan, 100, start, end, start, DayStatus.READ, 20)
        assert planned(read.records)[1:] == [9, 9, 9, 9, 9, 9, 9, 9, 8]

        cleared = apply_transition(read.records, 100, start, end, start, DayStatus.UNSET)

        assert planned(cleared.records) == [10] * 10
        assert start not in cleared.writes
        assert cleared.updated_day.status == DayStatus.UNSET

    def test_cleared_day_rejoins_open_pool(self, ten_day_plan, start, end):
        """Test a missed day that is cleared gets a fresh target."""
        missed = apply_transition(ten_day_plan, 100, start, end, end, DayStatus.MISSED)
        cleared = apply_transition(missed.records, 100, start, end, end, DayStatus.UNSET)

        assert cleared.updated_day.planned_pages == 10
        assert planned(cleared.records) == [10] * 10

    def test_conservation_over_a_sequence(self, ten_day_plan, start, end):
        """Test the invariant after every step, including out-of-order edits."""
        steps = [
            (start, DayStatus.READ, 12),
            (start + timedelta(days=1), DayStatus.READ, None),
            (start + timedelta(days=2), DayStatus.MISSED, None),
            (start + timedelta(days=5), DayStatus.READ, 4),
            (start, DayStatus.UNSET, None),
            (start + timedelta(days=2), DayStatus.READ, 20),
            (start + timedelta(days=1), DayStatus.MISSED, None),
        ]
        records = ten_day_plan
        for day, status, actual in steps:
            result = apply_transition(records, 100, start, end, day, status, actual)
            records = result.records
            assert conserved(records, 100)
            assert all(r.planned_pages >= 0 for r in records)

    def test_final_state_is_path_independent(self, ten_day_plan, start, end):
        """Test only the final statuses decide the open-day targets."""
        day1, day3, day6 = start, start + timedelta(days=2), start + timedelta(days=5)

        forward = [
            (day1, DayStatus.READ, 15),
            (day3, DayStatus.MISSED, None),
            (day6, DayStatus.READ, 7),
        ]
        detour = [
            (day6, DayStatus.MISSED, None),
            (day3, DayStatus.READ, 40),
            (day6, DayStatus.READ, 7),
            (day1, DayStatus.MISSED, None),
            (day3, DayStatus.MISSED, None),
            (day1, DayStatus.READ, 15),
        ]

        def run(steps):
            records = ten_day_plan
            for day, status, actual in steps:
                records = apply_transition(records, 100, start, end, day, status, actual).records
            return {r.day: r.planned_pages for r in records if r.status == DayStatus.UNSET}

        assert run(forward) == run(detour)
        assert run(forward) == run(list(reversed(forward)))

    def test_day_outside_range(self, ten_day_plan, start, end):
        """Test a day outside the plan is rejected."""
        with pytest.raises(InvalidRangeError):
            apply_transition(
                ten_day_plan, 100, start, end, end + timedelta(days=1), DayStatus.READ
            )

    def test_invalid_pages_rejected_before_computing(self, ten_day_plan, start, end):
        """Test validation errors surface before any result is produced."""
        with pytest.raises(InvalidPagesError):
            apply_transition(ten_day_plan, 100, start, end, start, DayStatus.READ, -3)

    def test_reports_anomalies(self, ten_day_plan, start, end):
        """Test duplicate records are reported back to the caller."""
        duplicate = ten_day_plan[4].model_copy(update={"planned_pages": 99})
        result = apply_transition(
            ten_day_plan + [duplicate], 100, start, end, start, DayStatus.READ
        )
        assert len(result.anomalies) == 1
        assert "more than once" in result.anomalies[0]


class TestNormalizeRecords:
    """Tests for input normalization."""

    def test_sorts_by_day(self, ten_day_plan, start, end):
        """Test records come back in date order."""
        records, anomalies = normalize_records(reversed(ten_day_plan), start, end)
        assert [r.day for r in records] == [r.day for r in ten_day_plan]
        assert anomalies == []

    def test_drops_out_of_range(self, ten_day_plan, start, end):
        """Test out-of-range days are dropped and flagged."""
        stray = DaySessionRecord(day=start - timedelta(days=1))
        records, anomalies = normalize_records(ten_day_plan + [stray], start, end)

        assert stray not in records
        assert len(anomalies) == 1
        assert anomalies[0].day == stray.day

    def test_last_duplicate_wins(self, ten_day_plan, start, end):
        """Test the later of two records for a day is kept."""
        newer = ten_day_plan[0].model_copy(update={"status": DayStatus.READ})
        records, anomalies = normalize_records(ten_day_plan + [newer], start, end)

        assert records[0].status == DayStatus.READ
        assert len(records) == 10
        assert len(anomalies) == 1

    def test_anomalies_logged_as_warnings(self, ten_day_plan, start, end):
        """Test every dropped or collapsed record is logged at WARNING."""
        messages = []
        sink_id = logger.add(messages.append, level="WARNING", format="{level} {message}")
        try:
            stray = DaySessionRecord(day=end + timedelta(days=1))
            redistribute(ten_day_plan + [stray, ten_day_plan[2]], 100, start, end)
        finally:
            logger.remove(sink_id)

        assert len(messages) == 2
        assert all(message.startswith("WARNING") for message in messages)
        assert "outside the plan range" in messages[0]
        assert "more than once" in messages[1]
