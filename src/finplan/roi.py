"""Return-on-investment analysis for growth scenarios."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from finplan.quarterly import ProjectionItem

# Categories treated as fixed expenses in break-even analysis.
FIXED_EXPENSE_CATEGORIES = (
    "Personel",
    "Kira",
    "Muhasebe",
    "Yazılım",
    "Abonelik",
    "Telekomünikasyon",
    "Sigorta",
    "Leasing",
)

DEFAULT_FIXED_COST_RATIO = 0.6
DEFAULT_DOWNWARD_ELASTICITY = 0.3
DEFAULT_UPWARD_ELASTICITY = 0.7

IRR_LOWER_BOUND = -0.99
IRR_UPPER_BOUND = 10.0
IRR_MAX_ITERATIONS = 100
IRR_NPV_TOLERANCE = 0.01


@dataclass
class InvestmentItem:
    name: str
    amount: float


@dataclass(frozen=True)
class ProjectedSummary:
    """Projected year totals of a scenario."""

    total_revenue: float
    total_expense: float
    net_profit: float


@dataclass(frozen=True)
class PaybackPeriod:
    months: int | None
    is_within_year: bool
    exact_months: float


@dataclass(frozen=True)
class BreakEven:
    revenue: float
    margin: float
    current_vs_required: float


@dataclass(frozen=True)
class NPVAnalysis:
    npv: float
    discount_rate: float
    irr: float
    is_positive_npv: bool


@dataclass(frozen=True)
class SensitivityScenario:
    name: str
    revenue_change: float
    revenue: float
    expense: float
    profit: float
    margin: float
    roi: float


@dataclass(frozen=True)
class SensitivityAnalysis:
    pessimistic: SensitivityScenario
    baseline: SensitivityScenario
    optimistic: SensitivityScenario


@dataclass(frozen=True)
class ROIAnalysis:
    simple_roi: float
    payback_period: PaybackPeriod
    break_even: BreakEven
    npv_analysis: NPVAnalysis
    sensitivity: SensitivityAnalysis


def is_fixed_category(category: str) -> bool:
    lowered = category.lower()
    return any(fixed.lower() in lowered for fixed in FIXED_EXPENSE_CATEGORIES)


def calculate_approximate_irr(
    investment: float, annual_profit: float, years: int = 1
) -> float:
    """Approximate internal rate of return, in percent.

    A single year uses the closed form ``profit / investment - 1``. Longer
    horizons bisect the rate over ``[-0.99, 10]`` until the NPV of a level
    annual profit stream is within 0.01 of zero.
    """
    if investment <= 0 or annual_profit <= 0:
        return 0.0

    if years == 1:
        return (annual_profit / investment - 1) * 100

    low, high = IRR_LOWER_BOUND, IRR_UPPER_BOUND
    irr = 0.0
    for _ in range(IRR_MAX_ITERATIONS):
        irr = (low + high) / 2
        npv = -investment
        for year in range(1, years + 1):
            npv += annual_profit / (1 + irr) ** year
        if abs(npv) < IRR_NPV_TOLERANCE:
            break
        if npv > 0:
            low = irr
        else:
            high = irr
    return irr * 100


def calculate_scenario(
    revenues: Sequence[ProjectionItem],
    expenses: Sequence[ProjectionItem],
    investments: Sequence[InvestmentItem],
    revenue_change: float,
    scenario_name: str,
    fixed_cost_ratio: float = DEFAULT_FIXED_COST_RATIO,
    downward_elasticity: float = DEFAULT_DOWNWARD_ELASTICITY,
    upward_elasticity: float = DEFAULT_UPWARD_ELASTICITY,
) -> SensitivityScenario:
    """Re-price a scenario under a revenue change.

    Fixed costs stay put. Variable costs follow revenue with a lower
    elasticity on the way down than on the way up.
    """
    base_revenue = sum(r.projected_amount for r in revenues)
    adjusted_revenue = base_revenue * (1 + revenue_change)
    total_base_expense = sum(e.projected_amount for e in expenses)

    fixed_expenses = total_base_expense * fixed_cost_ratio
    variable_expenses = total_base_expense * (1 - fixed_cost_ratio)

    elasticity = downward_elasticity if revenue_change < 0 else upward_elasticity
    adjusted_variable = variable_expenses * (1 + revenue_change * elasticity)
    adjusted_expense = fixed_expenses + adjusted_variable

    profit = adjusted_revenue - adjusted_expense
    margin = profit / adjusted_revenue * 100 if adjusted_revenue > 0 else 0.0
    total_investment = sum(i.amount for i in investments)
    roi = profit / total_investment * 100 if total_investment > 0 else 0.0

    return SensitivityScenario(
        name=scenario_name,
        revenue_change=revenue_change * 100,
        revenue=adjusted_revenue,
        expense=adjusted_expense,
        profit=profit,
        margin=margin,
        roi=roi,
    )


def calculate_payback(total_investment: float, annual_profit: float) -> PaybackPeriod:
    monthly_profit = annual_profit / 12
    if monthly_profit <= 0:
        return PaybackPeriod(months=None, is_within_year=False, exact_months=math.inf)
    exact = total_investment / monthly_profit
    return PaybackPeriod(months=math.ceil(exact), is_within_year=exact <= 12, exact_months=exact)


def calculate_break_even(
    expenses: Sequence[ProjectionItem], projected_revenue: float
) -> BreakEven:
    fixed = sum(e.projected_amount for e in expenses if is_fixed_category(e.category))
    variable = sum(e.projected_amount for e in expenses if not is_fixed_category(e.category))

    variable_ratio = variable / projected_revenue if projected_revenue > 0 else 0.0
    contribution_margin = 1 - variable_ratio
    revenue = fixed / contribution_margin if contribution_margin > 0 else 0.0
    return BreakEven(
        revenue=revenue,
        margin=contribution_margin * 100,
        current_vs_required=projected_revenue / revenue if revenue > 0 else 0.0,
    )


def analyze_roi(
    revenues: Sequence[ProjectionItem],
    expenses: Sequence[ProjectionItem],
    investments: Sequence[InvestmentItem],
    summary: ProjectedSummary,
    discount_rate: float = 0.10,
) -> ROIAnalysis:
    total_investment = sum(i.amount for i in investments)
    profit = summary.net_profit

    simple_roi = profit / total_investment * 100 if total_investment > 0 else 0.0

    npv = profit / (1 + discount_rate) - total_investment
    npv_analysis = NPVAnalysis(
        npv=npv,
        discount_rate=discount_rate * 100,
        irr=calculate_approximate_irr(total_investment, profit),
        is_positive_npv=npv > 0,
    )

    sensitivity = SensitivityAnalysis(
        pessimistic=calculate_scenario(
            revenues, expenses, investments, -0.20, "Pesimist (-20%)"
        ),
        baseline=calculate_scenario(revenues, expenses, investments, 0, "Baz Senaryo"),
        optimistic=calculate_scenario(
            revenues, expenses, investments, 0.20, "Optimist (+20%)"
        ),
    )

    return ROIAnalysis(
        simple_roi=simple_roi,
        payback_period=calculate_payback(total_investment, profit),
        break_even=calculate_break_even(expenses, summary.total_revenue),
        npv_analysis=npv_analysis,
        sensitivity=sensitivity,
    )
