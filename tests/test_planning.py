"""Tests for plan vs. actual comparison."""

from datetime import date, datetime

import pytest

from finplan.planning import (
    ActualEntry,
    PlanItem,
    calculate_day_metrics,
    calculate_deviation,
    format_deviation,
    get_deviation_status,
    is_plan_frozen,
    is_within_tolerance,
    parse_timestamp,
    to_iso_utc,
)


def _plan(id_, start, end, status="planned"):
    return PlanItem(id=id_, title=id_, start_at=start, end_at=end, status=status)


def _actual(id_, start, end, linked=None):
    return ActualEntry(id=id_, title=id_, start_at=start, end_at=end, linked_plan_item_id=linked)


class TestTimestamps:
    """Tests for timestamp parsing and rendering."""

    def test_parse_z_suffix(self):
        """Test that a trailing Z parses as UTC."""
        parsed = parse_timestamp("2025-01-06T09:00:00Z")

        assert parsed.utcoffset().total_seconds() == 0
        assert parsed.hour == 9

    def test_to_iso_utc_naive(self):
        """Test that naive values are rendered as UTC with milliseconds."""
        assert to_iso_utc(datetime(2025, 1, 6, 9, 30)) == "2025-01-06T09:30:00.000Z"

    def test_to_iso_utc_converts_offset(self):
        """Test conversion from a local offset."""
        value = parse_timestamp("2025-01-06T12:00:00+03:00")

        assert to_iso_utc(value) == "2025-01-06T09:00:00.000Z"

    def test_plan_item_from_row(self):
        """Test row defaults."""
        item = PlanItem.from_row(
            {"id": 7, "start_at": "2025-01-06T09:00:00Z", "end_at": "2025-01-06T10:15:00Z"}
        )

        assert item.id == "7"
        assert item.status == "planned"
        assert item.priority == "med"
        assert item.duration_minutes == 75


class TestDeviation:
    """Tests for start-time deviation helpers."""

    def test_late_start(self):
        """Test a positive deviation for a late start."""
        plan = _plan("p", datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 10))
        actual = _actual("a", datetime(2025, 1, 6, 9, 45), datetime(2025, 1, 6, 10, 30))

        assert calculate_deviation(actual, plan) == 45

    @pytest.mark.parametrize(
        "minutes,status",
        [(-31, "early"), (-30, "on-time"), (0, "on-time"), (30, "on-time"), (31, "late")],
    )
    def test_status(self, minutes, status):
        """Test the 30 minute tolerance band."""
        assert get_deviation_status(minutes) == status
        assert is_within_tolerance(minutes) is (status == "on-time")

    @pytest.mark.parametrize(
        "minutes,text",
        [(15, "15 dk"), (-15, "15 dk"), (60, "1 sa"), (90, "1 sa 30 dk"), (-125, "2 sa 5 dk")],
    )
    def test_format(self, minutes, text):
        """Test Turkish duration rendering."""
        assert format_deviation(minutes) == text


class TestFrozen:
    """Tests for is_plan_frozen."""

    def test_explicitly_frozen(self):
        """Test that frozen_at wins."""
        plan = _plan("p", datetime(2030, 1, 1, 9), datetime(2030, 1, 1, 10))
        plan.frozen_at = datetime(2025, 1, 1)

        assert is_plan_frozen(plan, today=date(2025, 1, 1)) is True

    def test_past_day(self):
        """Test that plans from earlier days are frozen."""
        plan = _plan("p", datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 10))

        assert is_plan_frozen(plan, today=date(2025, 1, 7)) is True
        assert is_plan_frozen(plan, today=date(2025, 1, 6)) is False


class TestDayMetrics:
    """Tests for calculate_day_metrics."""

    def test_mixed_day(self):
        """Test counts, deviation and focus score."""
        plans = [
            _plan("p1", datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 11), status="done"),
            _plan("p2", datetime(2025, 1, 6, 13), datetime(2025, 1, 6, 13, 30)),
        ]
        actuals = [
            _actual("a1", datetime(2025, 1, 6, 9, 10), datetime(2025, 1, 6, 11, 10), linked="p1"),
            _actual("a2", datetime(2025, 1, 6, 15), datetime(2025, 1, 6, 15, 30)),
        ]

        metrics = calculate_day_metrics(plans, actuals, "2025-01-06")

        assert metrics.planned_count == 2
        assert metrics.completed_count == 1
        assert metrics.unplanned_count == 1
        assert metrics.planned_minutes == 150
        assert metrics.actual_minutes == 150
        assert metrics.avg_deviation_minutes == 10
        assert metrics.within_tolerance_count == 1
        assert metrics.completion_rate == 50
        # 20 completion + 30 tolerance + 10 unplanned + 10 time accuracy
        assert metrics.focus_score == 70

    def test_stored_deviation_is_used(self):
        """Test that a stored deviation overrides the computed one."""
        plans = [_plan("p1", datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 10))]
        entry = _actual("a1", datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 10), linked="p1")
        entry.deviation_minutes = -45

        metrics = calculate_day_metrics(plans, [entry], "2025-01-06")

        assert metrics.avg_deviation_minutes == 45
        assert metrics.within_tolerance_count == 0

    def test_nothing_planned(self):
        """Test that rates are absent without plans."""
        actuals = [_actual("a", datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 10))]

        metrics = calculate_day_metrics([], actuals, "2025-01-06")

        assert metrics.completion_rate is None
        assert metrics.focus_score is None
        assert metrics.avg_deviation_minutes is None
        assert metrics.unplanned_count == 1
