"""Serverless function handlers for finplan."""

from finplan.functions.bank_statement import parse_bank_statement
from finplan.functions.base import FunctionError
from finplan.functions.categorize import categorize_transactions
from finplan.functions.match_receipts import match_receipts
from finplan.functions.plan import parse_actual, parse_plan
from finplan.functions.receipt import ReceiptFetchError, parse_receipt
from finplan.functions.suggest_duration import suggest_duration
from finplan.functions.weekly_metrics import calculate_weekly_metrics

__all__ = [
    "FunctionError",
    "ReceiptFetchError",
    "categorize_transactions",
    "parse_bank_statement",
    "parse_receipt",
    "parse_plan",
    "parse_actual",
    "calculate_weekly_metrics",
    "suggest_duration",
    "match_receipts",
]
