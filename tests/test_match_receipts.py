"""Tests for receipt to bank transaction matching."""

import pytest

from finplan.baas import BaaSError
from finplan.functions.match_receipts import (
    MISSING_DATE_DAYS,
    days_between,
    find_best_match,
    match_receipts,
    score_candidate,
    vendor_similarity,
)

RECEIPT = {
    "id": "r1",
    "total_amount": 1180,
    "receipt_date": "2025-03-10",
    "seller_name": "Migros Ticaret AŞ",
}

TRANSACTIONS = [
    {
        "id": "t1",
        "amount": -1180,
        "transaction_date": "2025-03-11",
        "description": "MIGROS KADIKOY",
        "counterparty": None,
    },
    {
        "id": "t2",
        "amount": -1190,
        "transaction_date": "2025-03-10",
        "description": "POS HARCAMA",
        "counterparty": "",
    },
    {
        "id": "t3",
        "amount": -1500,
        "transaction_date": "2025-03-10",
        "description": "MIGROS",
        "counterparty": "",
    },
]


class TestVendorSimilarity:
    """Tests for vendor_similarity."""

    def test_partial_words(self):
        """Test that short words are ignored and matches are case-insensitive."""
        assert vendor_similarity("Migros Ticaret AŞ", "MIGROS KADIKOY", "") == 0.5

    def test_counterparty_counts(self):
        """Test that the counterparty is searched too."""
        assert vendor_similarity("Shell Petrol", "POS", "SHELL PETROL AS") == 1.0

    @pytest.mark.parametrize("vendor", ["", "ab cd"])
    def test_no_usable_words(self, vendor):
        """Test vendors without any word longer than two characters."""
        assert vendor_similarity(vendor, "ab cd", "") == 0.0


class TestDaysBetween:
    """Tests for days_between."""

    def test_fractional_days(self):
        """Test dates against timestamps."""
        assert days_between("2025-03-10", "2025-03-12T12:00:00Z") == 2.5
        assert days_between("2025-03-12T12:00:00Z", "2025-03-10") == 2.5

    def test_missing_date(self):
        """Test that a missing date is treated as far away."""
        assert days_between(None, "2025-03-10") == MISSING_DATE_DAYS


class TestScoreCandidate:
    """Tests for score_candidate."""

    def test_scores_close_match(self):
        """Test the confidence of an amount, date and vendor match."""
        match = score_candidate(RECEIPT, TRANSACTIONS[0])

        assert match.receipt_id == "r1"
        assert match.transaction_id == "t1"
        assert match.confidence == pytest.approx(0.5 + (6 / 7) * 0.3 + 0.1)
        assert match.factors.amount_match is True
        assert match.factors.amount_diff == 0
        assert match.factors.date_proximity == 1
        assert match.factors.vendor_similarity == 0.5

    def test_amount_within_tolerance(self):
        """Test that up to 2% difference still matches."""
        match = score_candidate(RECEIPT, TRANSACTIONS[1])

        assert match.factors.amount_diff == pytest.approx(10 / 1180)
        assert match.confidence == pytest.approx(0.8)

    def test_amount_outside_tolerance(self):
        """Test that a larger difference never matches."""
        assert score_candidate(RECEIPT, TRANSACTIONS[2]) is None

    def test_date_outside_window(self):
        """Test that transactions more than a week away never match."""
        tx = {**TRANSACTIONS[0], "transaction_date": "2025-03-18"}

        assert score_candidate(RECEIPT, tx) is None

    def test_missing_dates(self):
        """Test that undated receipts cannot match."""
        assert score_candidate({**RECEIPT, "receipt_date": None}, TRANSACTIONS[0]) is None

    @pytest.mark.parametrize("field,row", [("total_amount", "receipt"), ("amount", "tx")])
    def test_zero_amounts(self, field, row):
        """Test that zero amounts are skipped."""
        receipt = {**RECEIPT, field: 0} if row == "receipt" else RECEIPT
        tx = {**TRANSACTIONS[0], field: 0} if row == "tx" else TRANSACTIONS[0]

        assert score_candidate(receipt, tx) is None


class TestFindBestMatch:
    """Tests for find_best_match."""

    def test_picks_highest_confidence(self):
        """Test that the vendor match beats the same-day anonymous one."""
        assert find_best_match(RECEIPT, TRANSACTIONS).transaction_id == "t1"

    def test_first_wins_tie(self):
        """Test that an equal later candidate does not replace the first."""
        twin = {**TRANSACTIONS[0], "id": "t9"}

        assert find_best_match(RECEIPT, [TRANSACTIONS[0], twin]).transaction_id == "t1"

    def test_no_candidates(self):
        """Test a receipt without any candidate."""
        assert find_best_match(RECEIPT, [TRANSACTIONS[2]]) is None


class TestMatchReceipts:
    """Tests for match_receipts."""

    @pytest.mark.asyncio
    async def test_no_unmatched_receipts(self, fake_baas):
        """Test the early return when nothing is unmatched."""
        result = await match_receipts(fake_baas, "u1")

        assert result == {"matches": [], "message": "No unmatched receipts found"}
        assert fake_baas.queries("bank_transactions") == []

    @pytest.mark.asyncio
    async def test_suggests_and_stores_match(self, fake_baas):
        """Test a full run that finds one match."""
        unmatched = {**RECEIPT, "id": "r2", "total_amount": 99}
        fake_baas.queue("receipts", [RECEIPT, unmatched])
        fake_baas.queue("bank_transactions", TRANSACTIONS)

        result = await match_receipts(fake_baas, "u1")

        assert result["processed"] == 2
        assert result["matched"] == 1
        match = result["matches"][0]
        assert match["receiptId"] == "r1"
        assert match["transactionId"] == "t1"
        assert match["matchFactors"] == {
            "amountMatch": True,
            "amountDiff": 0,
            "dateProximity": 1,
            "vendorSimilarity": 0.5,
        }

        upsert = fake_baas.queries("receipt_transaction_matches", "upsert")[0]
        row = upsert.args("upsert")[0][0]
        assert row == {
            "receipt_id": "r1",
            "bank_transaction_id": "t1",
            "match_type": "full",
            "matched_amount": 1180,
            "is_auto_suggested": True,
            "is_confirmed": False,
            "user_id": "u1",
        }

        update = fake_baas.queries("receipts", "update")[0]
        assert update.args("update")[0][0] == {
            "match_status": "suggested",
            "match_confidence": match["confidence"],
        }
        assert update.args("eq") == [("id", "r1")]

    @pytest.mark.asyncio
    async def test_query_filters(self, fake_baas):
        """Test the receipt and transaction filters."""
        fake_baas.queue("receipts", [RECEIPT])

        await match_receipts(fake_baas, "u1", year=2025, month=3)

        receipts = fake_baas.queries("receipts")[0]
        assert receipts.args("eq") == [
            ("user_id", "u1"),
            ("match_status", "unmatched"),
            ("year", 2025),
            ("month", 3),
        ]
        assert receipts.args("not_") == [("total_amount", "is", None)]

        transactions = fake_baas.queries("bank_transactions")[0]
        assert transactions.args("is_") == [("is_excluded", False)]
        assert transactions.args("order") == [("transaction_date",)]
        assert transactions.args("limit") == [(500,)]

    @pytest.mark.asyncio
    async def test_receipt_id_overrides_period(self, fake_baas):
        """Test that a single receipt ignores the year and month."""
        await match_receipts(fake_baas, "u1", receipt_id="r1", year=2025, month=3)

        receipts = fake_baas.queries("receipts")[0]
        assert receipts.args("eq")[-1] == ("id", "r1")
        assert ("year", 2025) not in receipts.args("eq")

    @pytest.mark.asyncio
    async def test_store_failure_keeps_match(self, fake_baas):
        """Test that a failed write is logged and the match still reported."""
        fake_baas.queue("receipts", [RECEIPT])
        fake_baas.queue("bank_transactions", TRANSACTIONS)
        fake_baas.queue("receipt_transaction_matches", BaaSError("conflict", status_code=409))

        result = await match_receipts(fake_baas, "u1")

        assert result["matched"] == 1
        assert fake_baas.queries("receipts", "update") == []

    @pytest.mark.asyncio
    async def test_transaction_fetch_failure(self, fake_baas):
        """Test that a failed transaction fetch propagates."""
        fake_baas.queue("receipts", [RECEIPT])
        fake_baas.queue("bank_transactions", BaaSError("down", status_code=503))

        with pytest.raises(BaaSError):
            await match_receipts(fake_baas, "u1")
