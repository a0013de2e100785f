"""Suggest bank transactions for unmatched receipts.

Receipts and transactions are compared on gross amount. A candidate must be
within 2% of the receipt total and within a week of the receipt date; among
those, date proximity and vendor words found in the transaction text decide.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from finplan.baas import BaaSClient, BaaSError
from finplan.planning import parse_timestamp

logger = structlog.get_logger(__name__)

AMOUNT_TOLERANCE = 0.02
DATE_WINDOW_DAYS = 7
# Proximity assumed when either side has no date; always outside the window.
MISSING_DATE_DAYS = 30
MIN_CONFIDENCE = 0.5
TRANSACTION_LIMIT = 500


@dataclass(frozen=True)
class MatchFactors:
    amount_match: bool
    amount_diff: float
    date_proximity: float
    vendor_similarity: float


@dataclass(frozen=True)
class ReceiptMatch:
    receipt_id: Any
    transaction_id: Any
    confidence: float
    factors: MatchFactors

    def to_response(self) -> dict[str, Any]:
        return {
            "receiptId": self.receipt_id,
            "transactionId": self.transaction_id,
            "confidence": self.confidence,
            "matchFactors": {
                "amountMatch": self.factors.amount_match,
                "amountDiff": self.factors.amount_diff,
                "dateProximity": self.factors.date_proximity,
                "vendorSimilarity": self.factors.vendor_similarity,
            },
        }


def _as_utc(value: Any) -> datetime | None:
    if not value:
        return None
    parsed = parse_timestamp(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_between(first: Any, second: Any) -> float:
    """Absolute distance in days, or ``MISSING_DATE_DAYS`` if a date is missing."""
    a, b = _as_utc(first), _as_utc(second)
    if a is None or b is None:
        return MISSING_DATE_DAYS
    return abs((a - b).total_seconds()) / 86400


def vendor_similarity(vendor_name: str, description: str, counterparty: str) -> float:
    """Share of vendor words (longer than two characters) in the transaction text."""
    words = [word for word in vendor_name.lower().split() if len(word) > 2]
    if not words:
        return 0.0
    haystack = f"{description.lower()} {counterparty.lower()}"
    return sum(1 for word in words if word in haystack) / len(words)


def score_candidate(receipt: dict[str, Any], transaction: dict[str, Any]) -> ReceiptMatch | None:
    """Score one receipt/transaction pair; ``None`` when it cannot match."""
    if not receipt.get("total_amount") or not transaction.get("amount"):
        return None

    receipt_amount = abs(receipt["total_amount"])
    amount_diff = abs(receipt_amount - abs(transaction["amount"])) / receipt_amount
    if amount_diff > AMOUNT_TOLERANCE:
        return None

    proximity = days_between(receipt.get("receipt_date"), transaction.get("transaction_date"))
    if proximity > DATE_WINDOW_DAYS:
        return None

    similarity = vendor_similarity(
        receipt.get("seller_name") or receipt.get("vendor_name") or "",
        transaction.get("description") or "",
        transaction.get("counterparty") or "",
    )
    confidence = 0.5 + (1 - proximity / DATE_WINDOW_DAYS) * 0.3 + similarity * 0.2
    return ReceiptMatch(
        receipt_id=receipt.get("id"),
        transaction_id=transaction.get("id"),
        confidence=confidence,
        factors=MatchFactors(
            amount_match=True,
            amount_diff=amount_diff,
            date_proximity=proximity,
            vendor_similarity=similarity,
        ),
    )


def find_best_match(
    receipt: dict[str, Any], transactions: Sequence[dict[str, Any]]
) -> ReceiptMatch | None:
    """Highest-confidence candidate; the earliest one wins ties."""
    best: ReceiptMatch | None = None
    for transaction in transactions:
        match = score_candidate(receipt, transaction)
        if match and (best is None or match.confidence > best.confidence):
            best = match
    if best is None or best.confidence < MIN_CONFIDENCE:
        return None
    return best


async def _store_suggestion(
    baas: BaaSClient, user_id: str, receipt: dict[str, Any], match: ReceiptMatch
) -> None:
    try:
        await (
            baas.table("receipt_transaction_matches")
            .upsert(
                {
                    "receipt_id": match.receipt_id,
                    "bank_transaction_id": match.transaction_id,
                    "match_type": "full",
                    "matched_amount": abs(receipt["total_amount"]),
                    "is_auto_suggested": True,
                    "is_confirmed": False,
                    "user_id": user_id,
                },
                on_conflict="receipt_id,bank_transaction_id",
            )
            .execute()
        )
        await (
            baas.table("receipts")
            .update({"match_status": "suggested", "match_confidence": match.confidence})
            .eq("id", match.receipt_id)
            .execute()
        )
    except BaaSError as e:
        logger.error("match_store_failed", receipt_id=match.receipt_id, error=str(e))


async def match_receipts(
    baas: BaaSClient,
    user_id: str,
    receipt_id: str | None = None,
    year: int | None = None,
    month: int | None = None,
) -> dict[str, Any]:
    """Suggest a bank transaction for each unmatched receipt of the user.

    Args:
        baas: Service-role client; every query filters on ``user_id``.
        user_id: Owner of the receipts and transactions.
        receipt_id: Only match this receipt. Takes precedence over the
            period filters.
        year: Only receipts filed under this year.
        month: Only receipts filed under this month.

    Returns:
        ``{"matches": [...], "processed": n, "matched": m}``, or an empty
        ``matches`` list with a message when nothing is unmatched.

    Raises:
        BaaSError: Fetching receipts or transactions failed. Failures while
            storing a suggestion are logged and skipped.
    """
    log = logger.bind(user_id=user_id, receipt_id=receipt_id, year=year, month=month)

    query = (
        baas.table("receipts")
        .select("*")
        .eq("user_id", user_id)
        .eq("match_status", "unmatched")
        .not_("total_amount", "is", None)
    )
    if receipt_id:
        query = query.eq("id", receipt_id)
    else:
        if year:
            query = query.eq("year", year)
        if month:
            query = query.eq("month", month)
    receipts = await query.execute()

    if not receipts:
        log.info("no_unmatched_receipts")
        return {"matches": [], "message": "No unmatched receipts found"}

    transactions = (
        await baas.table("bank_transactions")
        .select("*")
        .eq("user_id", user_id)
        .is_("is_excluded", False)
        .order("transaction_date", desc=True)
        .limit(TRANSACTION_LIMIT)
        .execute()
    )

    matches: list[ReceiptMatch] = []
    for receipt in receipts:
        match = find_best_match(receipt, transactions)
        if match is None:
            continue
        matches.append(match)
        await _store_suggestion(baas, user_id, receipt, match)

    log.info(
        "receipts_matched",
        processed=len(receipts),
        matched=len(matches),
        transactions=len(transactions),
    )
    return {
        "matches": [match.to_response() for match in matches],
        "processed": len(receipts),
        "matched": len(matches),
    }
