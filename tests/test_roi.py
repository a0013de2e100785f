"""Tests for ROI analysis."""

import math

import pytest

from finplan.quarterly import ProjectionItem
from finplan.roi import (
    InvestmentItem,
    ProjectedSummary,
    analyze_roi,
    calculate_approximate_irr,
    calculate_break_even,
    calculate_payback,
    calculate_scenario,
    is_fixed_category,
)


@pytest.fixture
def revenues():
    return [ProjectionItem("Danışmanlık", 600), ProjectionItem("Eğitim", 400)]


@pytest.fixture
def expenses():
    return [ProjectionItem("Personel", 300), ProjectionItem("Pazarlama", 200)]


@pytest.fixture
def investments():
    return [InvestmentItem("Ekipman", 600), InvestmentItem("Yazılım", 400)]


class TestPayback:
    """Tests for calculate_payback."""

    def test_exactly_one_year(self):
        """Test a payback of twelve months."""
        result = calculate_payback(120_000, 120_000)

        assert result.months == 12
        assert result.is_within_year is True
        assert result.exact_months == 12

    def test_rounds_months_up(self):
        """Test that partial months count as whole months."""
        result = calculate_payback(130_000, 120_000)

        assert result.months == 13
        assert result.is_within_year is False
        assert result.exact_months == pytest.approx(13.0)

    def test_never_paid_back(self):
        """Test that zero or negative profit never pays back."""
        for profit in (0, -5000):
            result = calculate_payback(100_000, profit)

            assert result.months is None
            assert result.is_within_year is False
            assert math.isinf(result.exact_months)


class TestIRR:
    """Tests for calculate_approximate_irr."""

    def test_single_year_closed_form(self):
        """Test the one-year formula."""
        assert calculate_approximate_irr(100_000, 150_000) == pytest.approx(50.0)

    def test_multi_year_bisection(self):
        """Test bisection on a three-year level stream."""
        assert calculate_approximate_irr(100, 50, years=3) == pytest.approx(23.38, abs=0.1)

    def test_no_investment_or_profit(self):
        """Test the zero guards."""
        assert calculate_approximate_irr(0, 100) == 0.0
        assert calculate_approximate_irr(100, 0) == 0.0
        assert calculate_approximate_irr(100, -10) == 0.0


class TestScenario:
    """Tests for calculate_scenario."""

    def test_pessimistic_uses_downward_elasticity(self, revenues, expenses, investments):
        """Test that variable costs shrink less than revenue."""
        result = calculate_scenario(revenues, expenses, investments, -0.20, "Pesimist")

        assert result.revenue_change == pytest.approx(-20)
        assert result.revenue == pytest.approx(800)
        assert result.expense == pytest.approx(488)
        assert result.profit == pytest.approx(312)
        assert result.margin == pytest.approx(39)
        assert result.roi == pytest.approx(31.2)

    def test_optimistic_uses_upward_elasticity(self, revenues, expenses, investments):
        """Test that variable costs grow with revenue."""
        result = calculate_scenario(revenues, expenses, investments, 0.20, "Optimist")

        assert result.expense == pytest.approx(528)
        assert result.profit == pytest.approx(672)
        assert result.margin == pytest.approx(56)

    def test_no_investment_roi_is_zero(self, revenues, expenses):
        """Test the ROI guard."""
        result = calculate_scenario(revenues, expenses, [], 0, "Baz")

        assert result.roi == 0.0


class TestBreakEven:
    """Tests for calculate_break_even."""

    def test_fixed_categories(self):
        """Test substring matching of fixed expense categories."""
        assert is_fixed_category("Ofis Kirası")
        assert is_fixed_category("personel giderleri")
        assert not is_fixed_category("Pazarlama")

    def test_break_even_revenue(self, expenses):
        """Test fixed cost over contribution margin."""
        result = calculate_break_even(expenses, 1000)

        assert result.revenue == pytest.approx(375)
        assert result.margin == pytest.approx(80)
        assert result.current_vs_required == pytest.approx(1000 / 375)

    def test_no_revenue(self, expenses):
        """Test the zero revenue guard."""
        result = calculate_break_even(expenses, 0)

        assert result.margin == pytest.approx(100)
        assert result.revenue == pytest.approx(300)
        assert result.current_vs_required == 0.0


class TestAnalyzeROI:
    """Tests for analyze_roi."""

    def test_full_analysis(self, revenues, expenses, investments):
        """Test the combined analysis."""
        summary = ProjectedSummary(total_revenue=1000, total_expense=500, net_profit=500)

        result = analyze_roi(revenues, expenses, investments, summary)

        assert result.simple_roi == pytest.approx(50)
        assert result.payback_period.months == 24
        assert result.npv_analysis.npv == pytest.approx(500 / 1.1 - 1000)
        assert result.npv_analysis.discount_rate == pytest.approx(10)
        assert result.npv_analysis.is_positive_npv is False
        assert result.npv_analysis.irr == pytest.approx(-50)
        assert result.sensitivity.baseline.profit == pytest.approx(500)
        assert result.sensitivity.pessimistic.name == "Pesimist (-20%)"
        assert result.sensitivity.optimistic.name == "Optimist (+20%)"
