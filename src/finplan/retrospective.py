"""Weekly retrospective metrics."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from finplan.planning import PlanItem
from finplan.rounding import js_round

# Indexed Sunday first.
DAY_NAMES = ("Pazar", "Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi")

DEFAULT_CATEGORY = "Genel"
DEEP_WORK_MINUTES = 60
ZOMBIE_CARRY_OVER = 3

LOW_COMPLETION_THRESHOLD = 50
LOW_ACCURACY_THRESHOLD = 70


@dataclass
class DayPerformance:
    planned: int = 0
    completed: int = 0


@dataclass
class WeeklyMetrics:
    """Computed retrospective for a single week."""

    completion_rate: int
    estimation_accuracy: int
    category_distribution: dict[str, float]
    day_performance: dict[str, DayPerformance]
    zombie_task_ids: list[str]
    auto_suggestions: list[str]
    deep_work_ratio: int
    zombie_tasks: list[dict[str, Any]] = field(default_factory=list)

    def to_row(self, user_id: str, week_start: str) -> dict[str, Any]:
        """Columns of the ``weekly_retrospectives`` table."""
        return {
            "user_id": user_id,
            "week_start": week_start,
            "completion_rate": self.completion_rate,
            "estimation_accuracy": self.estimation_accuracy,
            "category_distribution": self.category_distribution,
            "day_performance": {k: asdict(v) for k, v in self.day_performance.items()},
            "zombie_tasks": self.zombie_task_ids,
            "auto_suggestions": self.auto_suggestions,
            "deep_work_ratio": self.deep_work_ratio,
            "carried_over_count": len(self.zombie_task_ids),
        }

    def to_response(self) -> dict[str, Any]:
        return {
            "completionRate": self.completion_rate,
            "estimationAccuracy": self.estimation_accuracy,
            "categoryDistribution": self.category_distribution,
            "dayPerformance": {k: asdict(v) for k, v in self.day_performance.items()},
            "zombieTasks": self.zombie_tasks,
            "autoSuggestions": self.auto_suggestions,
            "deepWorkRatio": self.deep_work_ratio,
        }


def _day_name(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return DAY_NAMES[(value.weekday() + 1) % 7]


def _minutes(item: PlanItem) -> float:
    return (item.end_at - item.start_at).total_seconds() / 60


def is_zombie(task: dict[str, Any]) -> bool:
    """A task carried over at least three times and still not done."""
    return (task.get("carry_over_count") or 0) >= ZOMBIE_CARRY_OVER and task.get(
        "status"
    ) != "done"


def estimation_accuracy(deviation_percents: Sequence[float | None]) -> int:
    if not deviation_percents:
        return 100
    mean = sum(abs(d or 0) for d in deviation_percents) / len(deviation_percents)
    return max(0, js_round(100 - mean))


def best_day(day_performance: dict[str, DayPerformance]) -> str | None:
    """Day with the highest completion ratio; the first one wins ties."""
    best: str | None = None
    best_rate = 0.0
    for day, perf in day_performance.items():
        if perf.planned > 0:
            rate = perf.completed / perf.planned
            if rate > best_rate:
                best_rate = rate
                best = day
    return best


def build_suggestions(
    completion_rate: int,
    accuracy: int,
    zombie_count: int,
    strongest_day: str | None,
) -> list[str]:
    suggestions: list[str] = []
    if completion_rate < LOW_COMPLETION_THRESHOLD:
        suggestions.append(
            "Tamamlama oranın düşük. Daha az ve gerçekçi planlar yapmayı dene."
        )
    if accuracy < LOW_ACCURACY_THRESHOLD:
        suggestions.append("Süre tahminlerin tutmuyor. Görevlere daha fazla buffer ekle.")
    if zombie_count > 0:
        suggestions.append(
            f"{zombie_count} zombi görevin var. Bunları parçalamayı veya silmeyi düşün."
        )
    if strongest_day:
        suggestions.append(
            f"En verimli günün {strongest_day}. Bu günü önemli işler için değerlendir."
        )
    return suggestions


def compute_weekly_metrics(
    plan_items: Sequence[PlanItem],
    estimation_deviations: Sequence[float | None],
    zombie_tasks: Sequence[dict[str, Any]],
) -> WeeklyMetrics:
    """Aggregate a week of plan items into retrospective metrics.

    Args:
        plan_items: Items whose start falls inside the week.
        estimation_deviations: ``deviation_percent`` values recorded that week.
        zombie_tasks: Candidate rows with ``id``, ``carry_over_count`` and
            ``status``; rows that are not zombies are ignored.
    """
    total = len(plan_items)
    completed = sum(1 for item in plan_items if item.status == "done")
    completion_rate = js_round(completed / total * 100) if total else 0

    accuracy = estimation_accuracy(estimation_deviations)

    categories: dict[str, float] = {}
    days: dict[str, DayPerformance] = {}
    total_minutes = 0.0
    deep_minutes = 0.0
    for item in plan_items:
        minutes = _minutes(item)
        category = item.tags[0] if item.tags else DEFAULT_CATEGORY
        categories[category] = categories.get(category, 0) + minutes

        perf = days.setdefault(_day_name(item.start_at), DayPerformance())
        perf.planned += 1
        if item.status == "done":
            perf.completed += 1

        total_minutes += minutes
        if minutes >= DEEP_WORK_MINUTES:
            deep_minutes += minutes

    zombies = [dict(task) for task in zombie_tasks if is_zombie(task)]
    zombie_ids = [str(task["id"]) for task in zombies]

    deep_work_ratio = js_round(deep_minutes / total_minutes * 100) if total_minutes > 0 else 0

    return WeeklyMetrics(
        completion_rate=completion_rate,
        estimation_accuracy=accuracy,
        category_distribution=categories,
        day_performance=days,
        zombie_task_ids=zombie_ids,
        auto_suggestions=build_suggestions(
            completion_rate, accuracy, len(zombie_ids), best_day(days)
        ),
        deep_work_ratio=deep_work_ratio,
        zombie_tasks=zombies,
    )
