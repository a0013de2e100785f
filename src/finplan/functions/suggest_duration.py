"""Duration suggestions from the user's own estimation history."""

import math
from collections.abc import Sequence
from typing import Any, Literal

import structlog

from finplan.baas import BaaSClient
from finplan.functions.base import FunctionError
from finplan.rounding import js_round

logger = structlog.get_logger(__name__)

HISTORY_LIMIT = 30
MIN_SAMPLES = 3
BIAS_MESSAGE_THRESHOLD = 20
NOT_ENOUGH_DATA_MESSAGE = "Bu kategoride yeterli veri yok. Varsayılan +%20 buffer ekleniyor."

Confidence = Literal["low", "medium", "high"]


def confidence_from_spread(values: Sequence[float]) -> Confidence:
    """Coefficient of variation below 0.2 is high, below 0.4 medium."""
    mean = sum(values) / len(values)
    if mean <= 0:
        return "low"
    std_dev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    cv = std_dev / mean
    if cv < 0.2:
        return "high"
    if cv < 0.4:
        return "medium"
    return "low"


def bias_message(bias_percent: int) -> str | None:
    if bias_percent > BIAS_MESSAGE_THRESHOLD:
        return f"Bu kategoride genelde %{bias_percent} fazla süre harcıyorsun"
    if bias_percent < -BIAS_MESSAGE_THRESHOLD:
        return f"Bu kategoride genelde %{abs(bias_percent)} erken bitiriyorsun"
    return None


def build_duration_suggestion(history: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Suggest a duration from history rows, newest first.

    The suggestion is the median actual duration (the upper one for even
    counts). Bias is the mean of ``(actual - estimated) / estimated`` over
    rows that have both values.
    """
    if len(history) < MIN_SAMPLES:
        return {
            "suggested_minutes": None,
            "personal_bias_percent": None,
            "confidence": "low",
            "sample_size": len(history),
            "message": NOT_ENOUGH_DATA_MESSAGE,
            "category_stats": None,
        }

    actuals = sorted(
        row["actual_minutes"] for row in history if row.get("actual_minutes") is not None
    )
    estimates = [
        row["estimated_minutes"] for row in history if row.get("estimated_minutes") is not None
    ]
    biases = [
        (row["actual_minutes"] - row["estimated_minutes"]) / row["estimated_minutes"] * 100
        for row in history
        if row.get("actual_minutes") and row.get("estimated_minutes")
    ]
    avg_bias = js_round(sum(biases) / len(biases)) if biases else 0

    return {
        "suggested_minutes": actuals[len(actuals) // 2],
        "personal_bias_percent": avg_bias,
        "confidence": confidence_from_spread(actuals),
        "sample_size": len(history),
        "message": bias_message(avg_bias),
        "category_stats": {
            "total_tasks": len(history),
            "avg_estimated": js_round(sum(estimates) / len(estimates)) if estimates else None,
            "avg_actual": js_round(sum(actuals) / len(actuals)),
        },
    }


async def suggest_duration(baas: BaaSClient, user_id: str, category: str | None) -> dict[str, Any]:
    """Suggest how long a task in ``category`` will take this user.

    Raises:
        FunctionError: No category given (400).
        BaaSError: The history query failed.
    """
    if not category:
        raise FunctionError("Category is required", status_code=400)

    history = (
        await baas.table("estimation_history")
        .select("estimated_minutes,actual_minutes,deviation_percent")
        .eq("user_id", user_id)
        .eq("category", category)
        .not_("actual_minutes", "is", None)
        .order("created_at", desc=True)
        .limit(HISTORY_LIMIT)
        .execute()
    )
    suggestion = build_duration_suggestion(history)
    logger.info(
        "duration_suggested",
        user_id=user_id,
        category=category,
        samples=suggestion["sample_size"],
        minutes=suggestion["suggested_minutes"],
        confidence=suggestion["confidence"],
    )
    return suggestion
