"""Bank statement parsing: spreadsheet text in, normalized transactions out."""

import math
from datetime import datetime, timezone
from typing import Any

import structlog

from finplan.clients.gateway import GatewayClient
from finplan.config import get_settings
from finplan.extraction import extract_statement_payload, parse_localized_amount
from finplan.functions.base import js_number
from finplan.functions.definitions import STATEMENT_SYSTEM_PROMPT, statement_user_prompt

logger = structlog.get_logger(__name__)

STATEMENT_MAX_TOKENS = 100000
DEFAULT_CONFIDENCE = 0.8


def _finite(value: float | None) -> float | None:
    if value is None or math.isnan(value):
        return None
    return value


def _to_amount(value: Any) -> float | None:
    if isinstance(value, str):
        return parse_localized_amount(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def normalize_transaction(transaction: dict[str, Any], index: int) -> dict[str, Any]:
    """Normalize one model-produced row.

    The sign of ``original_amount`` (the spreadsheet's value) wins when it
    disagrees with the model's ``amount``.
    """
    amount_value = transaction.get("amount")
    original_raw = transaction.get("original_amount") or (
        js_number(amount_value) if amount_value is not None else ""
    )
    original_parsed = _finite(parse_localized_amount(original_raw))
    amount = _finite(_to_amount(amount_value))
    row_number = transaction.get("row_number") or index + 1

    if original_parsed is not None and amount is not None:
        if (
            (original_parsed > 0) != (amount > 0)
            and original_parsed != 0
            and amount != 0
        ):
            logger.warning(
                "amount_sign_mismatch",
                row_number=row_number,
                original=original_parsed,
                model_amount=amount,
            )
            amount = original_parsed

    date = transaction.get("date") or None
    return {
        "index": index,
        "row_number": row_number,
        "date": date,
        "original_date": transaction.get("original_date") or date or "",
        "description": transaction.get("description") or "",
        "amount": amount if amount is not None else 0,
        "original_amount": original_raw,
        "balance": _finite(_to_amount(transaction.get("balance"))),
        "reference": transaction.get("reference") or None,
        "counterparty": transaction.get("counterparty") or None,
        "transaction_type": transaction.get("transaction_type") or "OTHER",
        "channel": transaction.get("channel") or None,
        "needs_review": transaction.get("needs_review") or False,
        "confidence": transaction.get("confidence") or DEFAULT_CONFIDENCE,
    }


def summarize_transactions(transactions: list[dict[str, Any]]) -> dict[str, Any]:
    """Summary used when the model did not provide one."""
    count = len(transactions)
    return {
        "total_rows_in_file": count,
        "header_rows_skipped": 0,
        "footer_rows_skipped": 0,
        "empty_rows_skipped": 0,
        "transaction_count": count,
        "needs_review_count": sum(1 for t in transactions if t["needs_review"]),
        "total_income": sum(t["amount"] for t in transactions if t["amount"] > 0),
        "total_expense": sum(abs(t["amount"]) for t in transactions if t["amount"] < 0),
        "date_range": {
            "start": transactions[0]["date"] if transactions else None,
            "end": transactions[-1]["date"] if transactions else None,
        },
    }


def default_bank_info() -> dict[str, Any]:
    return {
        "detected_bank": None,
        "account_number": None,
        "iban": None,
        "currency": "TRY",
    }


async def parse_bank_statement(
    gateway: GatewayClient,
    file_content: str,
    file_type: str | None = None,
    file_name: str | None = None,
    batch_index: int | None = None,
    total_batches: int | None = None,
) -> dict[str, Any]:
    """Extract every transaction row of a bank statement.

    ``batch_index`` and ``total_batches`` mark one chunk of a larger file;
    the response then echoes ``batchIndex``.

    Raises:
        GatewayError: The gateway failed after all retries.
    """
    settings = get_settings()
    is_batch = batch_index is not None and total_batches is not None
    log = logger.bind(file_name=file_name, batch=batch_index, total_batches=total_batches)
    log.info("statement_received", content_length=len(file_content or ""))

    response = await gateway.generate(
        system_prompt=STATEMENT_SYSTEM_PROMPT,
        messages=[
            {
                "role": "user",
                "content": statement_user_prompt(file_type, file_name, file_content),
            }
        ],
        model=settings.pro_model,
        max_tokens=STATEMENT_MAX_TOKENS,
        timeout=settings.statement_timeout,
        retries=settings.statement_max_retries,
        retry_delay=settings.statement_retry_delay,
    )
    log.debug("statement_response", length=len(response.content), preview=response.content[:500])

    payload = extract_statement_payload(response.content)
    transactions = [
        normalize_transaction(t, i)
        for i, t in enumerate(payload["transactions"])
        if isinstance(t, dict)
    ]
    log.info("statement_parsed", transactions=len(transactions))

    result: dict[str, Any] = {
        "success": True,
        "transactions": transactions,
        "summary": payload["summary"] or summarize_transactions(transactions),
        "bank_info": payload["bank_info"] or default_bank_info(),
        "count": len(transactions),
    }
    if is_batch:
        result["batchIndex"] = batch_index
    result["metadata"] = {
        "fileName": file_name or "unknown",
        "fileType": file_type or "unknown",
        "transactionCount": len(transactions),
        "processedAt": datetime.now(timezone.utc).isoformat(),
        "model": settings.pro_model,
    }
    return result
