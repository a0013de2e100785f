"""Tests for browser-compatible rounding helpers."""

from decimal import Decimal

import pytest

from finplan.rounding import js_round, round_half_away, round_to, to_fixed


class TestJsRound:
    """Tests for js_round."""

    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (2.4, 2), (-2.5, -2), (-2.6, -3), (0.5, 1), (-0.5, 0)],
    )
    def test_half_rounds_up(self, value, expected):
        """Test that halves round towards positive infinity."""
        assert js_round(value) == expected

    def test_differs_from_builtin_round(self):
        """Test the case where Python's banker's rounding disagrees."""
        assert round(2.5) == 2
        assert js_round(2.5) == 3


class TestRoundTo:
    """Tests for round_to."""

    def test_binary_representation_rounds_down(self):
        """Test that 1.005 * 100 is just below 100.5."""
        assert round_to(1.005, 2) == 1.0

    def test_rounds_to_two_digits(self):
        """Test ordinary two-digit rounding."""
        assert round_to(12.3456, 2) == 12.35
        assert round_to(12.3456, 1) == 12.3


class TestToFixed:
    """Tests for to_fixed."""

    def test_uses_exact_binary_value(self):
        """Test that 1.005 is slightly below the midpoint."""
        assert to_fixed(1.005, 2) == "1.00"

    def test_exact_half_rounds_away(self):
        """Test that exactly representable halves round away from zero."""
        assert to_fixed(1.25, 1) == "1.3"
        assert to_fixed(0.5, 0) == "1"

    def test_pads_decimals(self):
        """Test that integers are padded."""
        assert to_fixed(3, 2) == "3.00"


class TestRoundHalfAway:
    """Tests for round_half_away."""

    def test_uses_shortest_decimal(self):
        """Test that the printed form of the float is rounded."""
        assert round_half_away(2.675, 2) == Decimal("2.68")

    def test_negative_half(self):
        """Test that negative halves round away from zero."""
        assert round_half_away(-1.5) == Decimal("-2")
