"""Tests for currency formatting."""

import pytest

from finplan.formatters import (
    format_compact,
    format_compact_try,
    format_compact_usd,
    format_full,
    format_full_try,
    format_full_usd,
)


class TestFormatCompact:
    """Tests for format_compact."""

    def test_thousands(self):
        """Test K suffix with one decimal."""
        assert format_compact(150500) == "₺150.5K"
        assert format_compact(1250) == "₺1.3K"
        assert format_compact(1000) == "₺1.0K"

    def test_millions(self):
        """Test M suffix with one decimal."""
        assert format_compact(2_900_000, "USD") == "$2.9M"
        assert format_compact(1_000_000) == "₺1.0M"

    def test_small_values_have_no_decimals(self):
        """Test that values under a thousand are whole numbers."""
        assert format_compact(999) == "₺999"
        assert format_compact(0) == "₺0"

    def test_negative_values(self):
        """Test that the sign precedes the symbol."""
        assert format_compact(-500) == "-₺500"
        assert format_compact(-150500, "USD") == "-$150.5K"
        assert format_compact(-1500) == "-₺1.5K"

    def test_just_below_a_million_stays_in_thousands(self):
        """Test the boundary where rounding reaches 1000.0K."""
        assert format_compact(999950) == "₺1000.0K"
        assert format_compact(999999) == "₺1000.0K"

    def test_float_representation_rounding(self):
        """Test that 1.05 rounds on its exact binary value."""
        assert format_compact(1050) == "₺1.1K"

    def test_unsupported_currency(self):
        """Test that an unknown currency is rejected."""
        with pytest.raises(ValueError, match="Unsupported currency"):
            format_compact(100, "EUR")

    def test_deprecated_wrappers(self):
        """Test the currency-specific wrappers."""
        assert format_compact_usd(1500) == "$1.5K"
        assert format_compact_try(1500) == "₺1.5K"


class TestFormatFull:
    """Tests for full (grouped) formatting."""

    def test_usd_uses_commas(self):
        """Test comma grouping for dollars."""
        assert format_full_usd(150549.4) == "$150,549"
        assert format_full_usd(-1000) == "-$1,000"

    def test_try_uses_dots(self):
        """Test dot grouping for lira."""
        assert format_full_try(150549) == "₺150.549"
        assert format_full_try(-1000) == "-₺1.000"

    def test_halves_round_away_from_zero(self):
        """Test rounding of halves."""
        assert format_full_usd(1000.5) == "$1,001"
        assert format_full_try(-2.5) == "-₺3"

    def test_negative_rounding_to_zero_has_no_sign(self):
        """Test that -0.4 renders as zero."""
        assert format_full_usd(-0.4) == "$0"

    def test_format_full_dispatch(self):
        """Test format_full selects by currency."""
        assert format_full(1234567, "USD") == "$1,234,567"
        assert format_full(1234567) == "₺1.234.567"

        with pytest.raises(ValueError):
            format_full(1, "GBP")
