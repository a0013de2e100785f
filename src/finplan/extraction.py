"""Defensive JSON extraction from model output."""

from __future__ import annotations

import json
import re
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE | re.MULTILINE)
_FENCE_CLOSE = re.compile(r"```\s*$", re.MULTILINE)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class JSONExtractionError(ValueError):
    """Raised when no usable JSON can be recovered from model output."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    cleaned = _FENCE_OPEN.sub("", text)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the outermost ``{...}`` object in ``text``.

    Raises:
        JSONExtractionError: If there is no object or it does not parse.
    """
    match = _OBJECT.search(text or "")
    if match is None:
        raise JSONExtractionError("No JSON object found in model output", raw=text)
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise JSONExtractionError(f"Invalid JSON in model output: {e}", raw=text) from e
    if not isinstance(parsed, dict):
        raise JSONExtractionError("Model output is not a JSON object", raw=text)
    return parsed


def _parse_array(text: str) -> list[Any] | None:
    first = text.find("[")
    last = text.rfind("]")
    if first == -1 or last <= first:
        return None

    array_text = text[first : last + 1]
    try:
        parsed = json.loads(array_text)
        return parsed if isinstance(parsed, list) else None
    except json.JSONDecodeError:
        pass

    # Truncated output: keep everything up to the last complete element.
    last_complete = array_text.rfind("},")
    if last_complete <= 0:
        return None
    try:
        parsed = json.loads(array_text[: last_complete + 1] + "]")
    except json.JSONDecodeError:
        logger.warning("statement_array_repair_failed", length=len(array_text))
        return None
    logger.info("statement_array_repaired", transactions=len(parsed))
    return parsed if isinstance(parsed, list) else None


def extract_statement_payload(text: str) -> dict[str, Any]:
    """Recover bank statement JSON from model output.

    Tries the whole object first, then the first ``[...]`` array, then the
    same array cut back to its last complete element. Never raises; an
    unrecoverable payload yields no transactions.
    """
    result: dict[str, Any] = {"transactions": [], "summary": None, "bank_info": None}
    cleaned = strip_code_fences(text or "")

    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first == -1 or last <= first:
        return result

    try:
        parsed = json.loads(cleaned[first : last + 1])
    except json.JSONDecodeError:
        logger.info("statement_object_parse_failed", length=len(cleaned))
        transactions = _parse_array(cleaned)
        if transactions is not None:
            result["transactions"] = transactions
        return result

    if isinstance(parsed, dict):
        transactions = parsed.get("transactions")
        if isinstance(transactions, list):
            result["transactions"] = transactions
        elif transactions is not None:
            logger.warning("statement_transactions_not_list", kind=type(transactions).__name__)
        result["summary"] = parsed.get("summary") or None
        result["bank_info"] = parsed.get("bank_info") or None
    elif isinstance(parsed, list):
        result["transactions"] = parsed
    return result


_LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")


def parse_localized_amount(value: Any) -> float | None:
    """Parse a Turkish formatted amount (``1.234,56`` is 1234.56).

    Numbers pass through unchanged. Blank or unparseable input gives ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str) or not value.strip():
        return None

    normalized = value.replace(".", "").replace(",", ".", 1)
    match = _LEADING_NUMBER.match(normalized)
    if match is None:
        return None
    return float(match.group(0))
