"""Plan vs. actual comparison and daily metrics."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Literal

from finplan.rounding import js_round

# Minutes either side of the planned start that still count as on time.
DEVIATION_TOLERANCE = 30

DeviationStatus = Literal["early", "on-time", "late"]


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp as stored by the BaaS."""
    if isinstance(value, datetime):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def to_iso_utc(value: datetime) -> str:
    """Millisecond UTC timestamp with a trailing ``Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _minutes_between(start: datetime, end: datetime) -> int:
    return js_round((end - start).total_seconds() / 60)


@dataclass
class PlanItem:
    """A planned block on the user's calendar."""

    id: str
    title: str
    start_at: datetime
    end_at: datetime
    status: str = "planned"
    type: str = "task"
    priority: str = "med"
    tags: list[str] = field(default_factory=list)
    frozen_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PlanItem:
        frozen_at = row.get("frozen_at")
        return cls(
            id=str(row["id"]),
            title=row.get("title", ""),
            start_at=parse_timestamp(row["start_at"]),
            end_at=parse_timestamp(row["end_at"]),
            status=row.get("status") or "planned",
            type=row.get("type") or "task",
            priority=row.get("priority") or "med",
            tags=list(row.get("tags") or []),
            frozen_at=parse_timestamp(frozen_at) if frozen_at else None,
        )

    @property
    def duration_minutes(self) -> int:
        return _minutes_between(self.start_at, self.end_at)


@dataclass
class ActualEntry:
    """Something the user actually did, optionally linked to a plan item."""

    id: str
    title: str
    start_at: datetime
    end_at: datetime
    linked_plan_item_id: str | None = None
    deviation_minutes: int | None = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ActualEntry:
        linked = row.get("linked_plan_item_id")
        return cls(
            id=str(row["id"]),
            title=row.get("title", ""),
            start_at=parse_timestamp(row["start_at"]),
            end_at=parse_timestamp(row["end_at"]),
            linked_plan_item_id=str(linked) if linked else None,
            deviation_minutes=row.get("deviation_minutes"),
            tags=list(row.get("tags") or []),
        )

    @property
    def duration_minutes(self) -> int:
        return _minutes_between(self.start_at, self.end_at)


@dataclass(frozen=True)
class DayMetrics:
    """Aggregated plan adherence for a single day."""

    date: str
    planned_count: int
    completed_count: int
    skipped_count: int
    actual_count: int
    unplanned_count: int
    planned_minutes: int
    actual_minutes: int
    avg_deviation_minutes: int | None
    within_tolerance_count: int
    completion_rate: int | None
    focus_score: int | None


def _local_date(value: datetime) -> date:
    if value.tzinfo is not None:
        return value.astimezone().date()
    return value.date()


def is_plan_frozen(plan: PlanItem, today: date | None = None) -> bool:
    """A plan is frozen once explicitly frozen or once its day has passed."""
    if plan.frozen_at is not None:
        return True
    current = today or date.today()
    return _local_date(plan.start_at) < current


def calculate_deviation(actual: ActualEntry, plan: PlanItem) -> int:
    """Start-time difference in minutes; positive means the actual started late."""
    return _minutes_between(plan.start_at, actual.start_at)


def is_within_tolerance(deviation_minutes: int) -> bool:
    return abs(deviation_minutes) <= DEVIATION_TOLERANCE


def get_deviation_status(deviation_minutes: int) -> DeviationStatus:
    if deviation_minutes < -DEVIATION_TOLERANCE:
        return "early"
    if deviation_minutes > DEVIATION_TOLERANCE:
        return "late"
    return "on-time"


def format_deviation(deviation_minutes: int) -> str:
    """Render a deviation as ``"15 dk"``, ``"1 sa"`` or ``"1 sa 30 dk"``."""
    minutes = abs(deviation_minutes)
    if minutes < 60:
        return f"{minutes} dk"
    hours, remainder = divmod(minutes, 60)
    return f"{hours} sa {remainder} dk" if remainder > 0 else f"{hours} sa"


def calculate_day_metrics(
    plan_items: Sequence[PlanItem],
    actual_entries: Sequence[ActualEntry],
    day: str,
) -> DayMetrics:
    """Compute adherence metrics for one day.

    The focus score weighs completion (40), start-time tolerance (30),
    planned share of actual work (20) and total time accuracy (10). Rates
    and score are ``None`` when nothing was planned.
    """
    planned_count = len(plan_items)
    completed_count = sum(1 for p in plan_items if p.status == "done")
    skipped_count = sum(1 for p in plan_items if p.status == "skipped")
    actual_count = len(actual_entries)
    unplanned_count = sum(1 for a in actual_entries if not a.linked_plan_item_id)

    planned_minutes = sum(p.duration_minutes for p in plan_items)
    actual_minutes = sum(a.duration_minutes for a in actual_entries)

    plans_by_id = {p.id: p for p in plan_items}
    linked_entries = [a for a in actual_entries if a.linked_plan_item_id]
    deviations: list[int] = []
    within_tolerance_count = 0
    for entry in linked_entries:
        plan = plans_by_id.get(entry.linked_plan_item_id or "")
        if plan is None:
            continue
        if entry.deviation_minutes is not None:
            deviation = entry.deviation_minutes
        else:
            deviation = calculate_deviation(entry, plan)
        deviations.append(deviation)
        if is_within_tolerance(deviation):
            within_tolerance_count += 1

    avg_deviation = (
        js_round(sum(abs(d) for d in deviations) / len(deviations)) if deviations else None
    )

    completion_rate: int | None = None
    focus_score: int | None = None
    if planned_count > 0:
        completion_rate = js_round(completed_count / planned_count * 100)

        completion_score = completed_count / planned_count * 40
        tolerance_score = (
            within_tolerance_count / len(linked_entries) * 30 if linked_entries else 30
        )
        unplanned_score = (1 - unplanned_count / actual_count) * 20 if actual_count else 20
        if planned_minutes > 0:
            drift = abs(actual_minutes - planned_minutes) / planned_minutes * 10
            time_accuracy = max(0.0, 10 - drift)
        else:
            time_accuracy = 10.0
        focus_score = js_round(
            completion_score + tolerance_score + unplanned_score + time_accuracy
        )

    return DayMetrics(
        date=day,
        planned_count=planned_count,
        completed_count=completed_count,
        skipped_count=skipped_count,
        actual_count=actual_count,
        unplanned_count=unplanned_count,
        planned_minutes=planned_minutes,
        actual_minutes=actual_minutes,
        avg_deviation_minutes=avg_deviation,
        within_tolerance_count=within_tolerance_count,
        completion_rate=completion_rate,
        focus_score=focus_score,
    )
