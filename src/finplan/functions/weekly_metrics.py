"""Weekly retrospective: fetch the week, compute metrics, store them."""

from datetime import timedelta
from typing import Any

import structlog

from finplan.baas import BaaSClient
from finplan.planning import PlanItem, parse_timestamp, to_iso_utc
from finplan.retrospective import ZOMBIE_CARRY_OVER, compute_weekly_metrics

logger = structlog.get_logger(__name__)

RETROSPECTIVES_TABLE = "weekly_retrospectives"


async def calculate_weekly_metrics(
    baas: BaaSClient,
    user_id: str,
    week_start: str,
) -> dict[str, Any]:
    """Compute and upsert the retrospective for the week starting ``week_start``.

    Args:
        baas: Service-role client; every query filters on ``user_id``.
        user_id: Owner of the week.
        week_start: ``YYYY-MM-DD`` (or a timestamp) of the week's Monday.

    Returns:
        ``{"success": True, "metrics": {...}, "retrospective": {...}}``.

    Raises:
        BaaSError: Any query failed.
    """
    start = parse_timestamp(week_start)
    start_iso = to_iso_utc(start)
    end_iso = to_iso_utc(start + timedelta(days=7))
    log = logger.bind(user_id=user_id, week_start=week_start)

    plan_rows = (
        await baas.table("plan_items")
        .select("*")
        .eq("user_id", user_id)
        .gte("start_at", start_iso)
        .lt("start_at", end_iso)
        .execute()
    )
    actual_rows = (
        await baas.table("actual_entries")
        .select("*")
        .eq("user_id", user_id)
        .gte("start_at", start_iso)
        .lt("start_at", end_iso)
        .execute()
    )
    log.info("week_fetched", plan_items=len(plan_rows), actual_entries=len(actual_rows))

    estimation_rows = (
        await baas.table("estimation_history")
        .select("deviation_percent")
        .eq("user_id", user_id)
        .gte("created_at", start_iso)
        .lt("created_at", end_iso)
        .execute()
    )
    zombie_rows = (
        await baas.table("plan_items")
        .select("id,title,carry_over_count,status")
        .eq("user_id", user_id)
        .gte("carry_over_count", ZOMBIE_CARRY_OVER)
        .neq("status", "done")
        .execute()
    )

    metrics = compute_weekly_metrics(
        [PlanItem.from_row(row) for row in plan_rows],
        [row.get("deviation_percent") for row in estimation_rows],
        zombie_rows,
    )
    row = metrics.to_row(user_id, week_start)

    existing = (
        await baas.table(RETROSPECTIVES_TABLE)
        .select("id")
        .eq("user_id", user_id)
        .eq("week_start", week_start)
        .maybe_single()
        .execute()
    )
    if existing:
        retrospective = (
            await baas.table(RETROSPECTIVES_TABLE)
            .update(row)
            .eq("id", existing["id"])
            .select()
            .single()
            .execute()
        )
    else:
        retrospective = (
            await baas.table(RETROSPECTIVES_TABLE).insert(row).select().single().execute()
        )

    log.info(
        "weekly_metrics_saved",
        completion_rate=metrics.completion_rate,
        zombies=len(metrics.zombie_task_ids),
        updated=existing is not None,
    )
    return {
        "success": True,
        "metrics": metrics.to_response(),
        "retrospective": retrospective,
    }
