"""Natural-language planning commands: plan items and actual entries."""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from finplan.baas import BaaSClient, BaaSError
from finplan.clients.gateway import EmptyResponseError, GatewayClient
from finplan.config import get_settings
from finplan.extraction import JSONExtractionError, extract_json_object
from finplan.functions.base import FunctionError
from finplan.functions.definitions import (
    ACTUAL_SYSTEM_PROMPT,
    PLAN_SYSTEM_PROMPT,
    actual_user_prompt_past,
    actual_user_prompt_today,
    plan_user_prompt,
)
from finplan.planning import parse_timestamp, to_iso_utc

logger = structlog.get_logger(__name__)

PARSE_FAILED_MESSAGE = "Komut anlaşılamadı. Lütfen daha net ifade edin."
PLAN_TEMPERATURE = 0.3


@dataclass(frozen=True)
class CommandTask:
    """How one kind of command turns model operations into table rows."""

    name: str
    operation: str
    table: str
    message: str
    build_row: Callable[[str, dict[str, Any]], dict[str, Any]]


def _plan_item_row(user_id: str, op: dict[str, Any]) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "title": op.get("title"),
        "start_at": op.get("startAt"),
        "end_at": op.get("endAt"),
        "type": op.get("type") or "task",
        "priority": op.get("priority") or "med",
        "tags": op.get("tags") or [],
        "notes": op.get("notes") or None,
        "source": "voice",
    }


def _actual_entry_row(user_id: str, op: dict[str, Any]) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "title": op.get("title"),
        "start_at": op.get("startAt"),
        "end_at": op.get("endAt"),
        "tags": op.get("tags") or [],
        "notes": op.get("notes") or None,
        "source": "voice",
    }


PLAN_TASK = CommandTask(
    name="parsePlan",
    operation="add",
    table="plan_items",
    message="{count} plan öğesi eklendi",
    build_row=_plan_item_row,
)

ACTUAL_TASK = CommandTask(
    name="parseActual",
    operation="addActual",
    table="actual_entries",
    message="{count} aktivite kaydedildi",
    build_row=_actual_entry_row,
)


def utc_offset_string(timezone_offset: float | None) -> str:
    """Browser ``getTimezoneOffset()`` minutes as ``+HH:00``.

    The offset is positive west of UTC, so ``-180`` is ``+03:00``.
    """
    offset_hours = -(timezone_offset or 0) / 60
    sign = "+" if offset_hours >= 0 else "-"
    return f"{sign}{abs(math.floor(offset_hours)):02d}:00"


def resolve_user_today(
    now: str | None, timezone_offset: float | None, local_time: str | None
) -> tuple[str, str]:
    """Return ``(user_today, user_local_time)``.

    ``local_time`` from the client wins; otherwise ``now`` is shifted by the
    browser offset.
    """
    if local_time:
        return local_time.split("T")[0], local_time
    reference = parse_timestamp(now) if now else datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    shifted = to_iso_utc(reference - timedelta(minutes=timezone_offset or 0))
    return shifted.split("T")[0], shifted


async def _record_command_event(baas: BaaSClient, event: dict[str, Any]) -> None:
    try:
        await baas.table("command_events").insert(event).execute()
    except BaaSError as e:
        logger.error("command_event_failed", task=event.get("task"), error=str(e))


async def apply_command(
    baas: BaaSClient,
    user_id: str,
    text: str,
    content: str,
    task: CommandTask,
) -> dict[str, Any]:
    """Parse the model's patch and insert its rows for ``user_id``.

    A patch that does not parse is recorded in ``command_events`` and
    reported as ``success: False``. Rows that fail to insert are skipped.
    """
    log = logger.bind(task=task.name, user_id=user_id)
    try:
        patch = extract_json_object(content)
    except JSONExtractionError as e:
        log.error("command_parse_failed", error=str(e), raw=content[:500])
        await _record_command_event(
            baas,
            {
                "user_id": user_id,
                "source": "text",
                "raw_transcript": text,
                "task": task.name,
                "ai_json_output": {"raw": content},
                "ai_parse_ok": False,
                "error": "JSON parse failed",
            },
        )
        return {"success": False, "error": PARSE_FAILED_MESSAGE}

    operations = patch.get("operations") or []
    log.info("command_parsed", operations=len(operations))

    items = []
    for op in operations:
        if not isinstance(op, dict) or op.get("op") != task.operation:
            continue
        try:
            row = (
                await baas.table(task.table)
                .insert(task.build_row(user_id, op))
                .select()
                .single()
                .execute()
            )
        except BaaSError as e:
            log.error("row_insert_failed", table=task.table, error=str(e))
            continue
        items.append(row)
        log.debug("row_inserted", table=task.table, id=row.get("id"))

    await _record_command_event(
        baas,
        {
            "user_id": user_id,
            "source": "text",
            "raw_transcript": text,
            "normalized_text": text,
            "task": task.name,
            "ai_json_output": patch,
            "ai_parse_ok": True,
            "apply_status": "applied",
            "diff_summary": {"added": len(items)},
        },
    )
    log.info("command_applied", added=len(items))

    return {
        "success": True,
        "message": task.message.format(count=len(items)),
        "items": items,
        "warnings": patch.get("warnings") or [],
        "clarifyingQuestions": patch.get("clarifyingQuestions") or [],
    }


def _require_text(text: str | None) -> str:
    if not text:
        raise FunctionError("Text is required", status_code=400)
    return text


async def parse_plan(
    gateway: GatewayClient,
    baas: BaaSClient,
    user_id: str,
    text: str | None,
    date: str | None = None,
    timezone_name: str | None = None,
    now: str | None = None,
) -> dict[str, Any]:
    """Turn a planning command ("yarın 10'da toplantı") into plan items."""
    text = _require_text(text)
    settings = get_settings()
    response = await gateway.generate(
        system_prompt=PLAN_SYSTEM_PROMPT,
        messages=[{"role": "user", "content": plan_user_prompt(text, date, now, timezone_name)}],
        model=settings.fast_model,
        temperature=PLAN_TEMPERATURE,
    )
    if not response.content:
        raise EmptyResponseError("No AI response")
    return await apply_command(baas, user_id, text, response.content, PLAN_TASK)


async def parse_actual(
    gateway: GatewayClient,
    baas: BaaSClient,
    user_id: str,
    text: str | None,
    date: str | None = None,
    timezone_name: str | None = None,
    now: str | None = None,
    timezone_offset: float | None = None,
    local_time: str | None = None,
) -> dict[str, Any]:
    """Record what the user did ("az önce 1 saat kod yazdım") as actual entries.

    ``date`` on the user's local today gets relative-time rules; any other
    date is treated as a past day.
    """
    text = _require_text(text)
    settings = get_settings()
    offset = utc_offset_string(timezone_offset)
    user_today, user_local_time = resolve_user_today(now, timezone_offset, local_time)

    if date == user_today:
        prompt = actual_user_prompt_today(text, date, user_local_time, timezone_name, offset)
    else:
        prompt = actual_user_prompt_past(text, date, user_today, timezone_name, offset)

    response = await gateway.generate(
        system_prompt=ACTUAL_SYSTEM_PROMPT,
        messages=[{"role": "user", "content": prompt}],
        model=settings.pro_model,
    )
    if not response.content:
        raise EmptyResponseError("No AI response")
    return await apply_command(baas, user_id, text, response.content, ACTUAL_TASK)
