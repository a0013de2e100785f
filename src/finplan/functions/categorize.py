"""Batch categorization of bank transactions through the gateway."""

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog

from finplan.clients.gateway import GatewayClient, GatewayError
from finplan.config import CategoryCatalog, get_settings, load_category_catalog
from finplan.functions.base import js_number
from finplan.functions.definitions import categorize_system_prompt, categorize_tool

logger = structlog.get_logger(__name__)


def format_transaction_line(index: int, transaction: dict[str, Any]) -> str:
    """``index|+amount|description|counterparty`` as sent to the model."""
    amount = transaction.get("amount") or 0
    sign = "+" if amount > 0 else ""
    counterparty = transaction.get("counterparty") or "-"
    return f"{index}|{sign}{js_number(amount)}|{transaction.get('description', '')}|{counterparty}"


def build_batch_prompt(batch: Sequence[dict[str, Any]], start_index: int) -> str:
    lines = "\n".join(
        format_transaction_line(start_index + offset, tx) for offset, tx in enumerate(batch)
    )
    end_index = start_index + len(batch) - 1
    return f"İŞLEMLER ({start_index}-{end_index}):\n{lines}\n\nHer işlem için kategori öner."


def split_batches(
    transactions: Sequence[dict[str, Any]], batch_size: int
) -> list[tuple[int, list[dict[str, Any]]]]:
    """Split into ``(start_index, batch)`` pairs of at most ``batch_size``."""
    return [
        (start, list(transactions[start : start + batch_size]))
        for start in range(0, len(transactions), batch_size)
    ]


async def categorize_batch(
    gateway: GatewayClient,
    batch: Sequence[dict[str, Any]],
    start_index: int,
    batch_index: int,
    total_batches: int,
    catalog: CategoryCatalog,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """Categorize one batch. Failures are logged and yield an empty list."""
    settings = get_settings()
    tool = categorize_tool(catalog)
    log = logger.bind(batch=batch_index + 1, total_batches=total_batches)

    try:
        response = await gateway.generate(
            system_prompt=categorize_system_prompt(catalog),
            messages=[{"role": "user", "content": build_batch_prompt(batch, start_index)}],
            tools=[tool],
            tool_choice=tool["name"],
            model=settings.fast_model,
            timeout=timeout if timeout is not None else settings.categorize_timeout,
        )
    except GatewayError as e:
        log.error("batch_failed", status_code=e.status_code, error=str(e))
        return []

    arguments = response.tool_arguments(tool["name"])
    results = arguments.get("results") if isinstance(arguments, dict) else None
    if not isinstance(results, list):
        log.error("batch_unparseable", content=response.content[:200])
        return []

    log.info("batch_categorized", count=len(results))
    return results


async def categorize_transactions(
    transactions: Sequence[dict[str, Any]],
    gateway: GatewayClient,
    categories: Sequence[dict[str, Any]] | None = None,
    catalog: CategoryCatalog | None = None,
) -> dict[str, Any]:
    """Categorize all transactions in parallel cohorts of batches.

    Args:
        transactions: Rows with ``amount``, ``description`` and optional
            ``counterparty``.
        gateway: Gateway client used for every batch.
        categories: Optional user categories; when their codes match the
            catalog the model is limited to those codes.
        catalog: Category catalog. Defaults to the bundled one.

    Returns:
        ``{"results": [...]}`` with the results of every successful batch.
    """
    settings = get_settings()
    catalog = catalog or load_category_catalog()
    if categories:
        user_codes = [str(c.get("code")) for c in categories if c.get("code")]
        catalog = catalog.restricted_to(user_codes)

    batches = split_batches(transactions, settings.categorize_batch_size)
    total_batches = len(batches)
    cohort_size = settings.categorize_parallel_batches
    logger.info(
        "categorization_started",
        transactions=len(transactions),
        batches=total_batches,
        parallel=cohort_size,
    )

    all_results: list[dict[str, Any]] = []
    for cohort_start in range(0, total_batches, cohort_size):
        cohort = batches[cohort_start : cohort_start + cohort_size]
        cohort_results = await asyncio.gather(
            *(
                categorize_batch(
                    gateway,
                    batch,
                    start_index,
                    cohort_start + offset,
                    total_batches,
                    catalog,
                )
                for offset, (start_index, batch) in enumerate(cohort)
            )
        )
        for results in cohort_results:
            all_results.extend(results)

        if cohort_start + cohort_size < total_batches:
            await asyncio.sleep(settings.categorize_group_delay)

    logger.info(
        "categorization_complete",
        categorized=len(all_results),
        transactions=len(transactions),
    )
    return {"results": all_results}
