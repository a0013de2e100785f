"""Company valuation and investor return calculations.

Four methods are blended into one figure:

1. Revenue multiple (market based)
2. EBITDA multiple (profitability based)
3. Discounted cash flow with a Gordon growth terminal value
4. VC method (exit value over the required return)

Investor returns are computed on top of a valuation with dilution from
future rounds, an option pool and liquidation preferences.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

EBITDA_ADD_BACK = 1.15

SECTOR_EBITDA_MULTIPLES: dict[str, float] = {
    "SaaS": 15,
    "Fintech": 12,
    "E-ticaret": 8,
    "Marketplace": 10,
    "B2B": 10,
    "B2C": 8,
    "default": 10,
}

SECTOR_REVENUE_MULTIPLES: dict[str, float] = {
    "SaaS": 8,
    "E-commerce": 2,
    "Fintech": 6,
    "Marketplace": 5,
    "B2B Services": 4,
    "Consulting": 3,
}

# Terminal multiple on the last cash flow when the Gordon model is undefined.
DCF_FALLBACK_MULTIPLE = 5


@dataclass(frozen=True)
class ValuationWeights:
    revenue_multiple: float = 0.30
    ebitda_multiple: float = 0.25
    dcf: float = 0.30
    vc_method: float = 0.15

    @property
    def total(self) -> float:
        return self.revenue_multiple + self.ebitda_multiple + self.dcf + self.vc_method


@dataclass(frozen=True)
class ValuationConfig:
    discount_rate: float = 0.30
    terminal_growth_rate: float = 0.03
    expected_roi: float = 10
    capex_ratio: float = 0.10
    tax_rate: float = 0.22
    weights: ValuationWeights = field(default_factory=ValuationWeights)


DEFAULT_VALUATION_CONFIG = ValuationConfig()


@dataclass(frozen=True)
class ValuationBreakdown:
    revenue_multiple: float
    ebitda_multiple: float
    dcf: float = 0.0
    vc_method: float = 0.0
    weighted: float = 0.0


@dataclass(frozen=True)
class YearValuation:
    ebitda: float
    ebitda_margin: float
    free_cash_flow: float
    valuations: ValuationBreakdown


@dataclass(frozen=True)
class DilutionConfig:
    """Dilution assumptions between entry and exit."""

    expected_future_rounds: int = 2
    avg_dilution_per_round: float = 0.20
    esop_pool_size: float = 0.10
    esop_pre_money: bool = True
    liquidation_preference: float = 1.0
    participating_preferred: bool = False


DEFAULT_DILUTION_CONFIG = DilutionConfig()


@dataclass(frozen=True)
class MOICResult:
    moic_no_dilution: float
    moic_with_dilution: float
    ownership_at_entry: float
    ownership_at_exit: float
    dilution_factor: float
    investor_proceeds: float
    irr_estimate: float


def get_ebitda_multiple(sector: str) -> float:
    return SECTOR_EBITDA_MULTIPLES.get(sector) or SECTOR_EBITDA_MULTIPLES["default"]


def get_revenue_multiple(sector: str) -> float:
    return SECTOR_REVENUE_MULTIPLES.get(sector) or SECTOR_REVENUE_MULTIPLES["Consulting"]


def calculate_ebitda(revenue: float, expenses: float) -> float:
    """Operating profit with a flat 15% depreciation and amortization add-back."""
    return (revenue - expenses) * EBITDA_ADD_BACK


def calculate_ebitda_margin(ebitda: float, revenue: float) -> float:
    if revenue <= 0:
        return 0.0
    return ebitda / revenue * 100


def calculate_fcf(
    ebitda: float, revenue: float, capex_ratio: float = 0.10, tax_rate: float = 0.22
) -> float:
    """Free cash flow: after-tax EBITDA less capex as a share of revenue."""
    return ebitda * (1 - tax_rate) - revenue * capex_ratio


def calculate_dcf_valuation(
    fcf_projections: Sequence[float], discount_rate: float, terminal_growth_rate: float
) -> float:
    if not fcf_projections:
        return 0.0

    pv_fcf = sum(
        fcf / (1 + discount_rate) ** (year + 1) for year, fcf in enumerate(fcf_projections)
    )
    terminal_fcf = fcf_projections[-1]

    if discount_rate <= terminal_growth_rate:
        return pv_fcf + terminal_fcf * DCF_FALLBACK_MULTIPLE

    terminal_value = terminal_fcf * (1 + terminal_growth_rate) / (
        discount_rate - terminal_growth_rate
    )
    pv_terminal = terminal_value / (1 + discount_rate) ** len(fcf_projections)
    return pv_fcf + pv_terminal


def calculate_vc_valuation(projected_exit_value: float, expected_roi: float) -> float:
    if expected_roi <= 0:
        return 0.0
    return projected_exit_value / expected_roi


def calculate_weighted_valuation(
    valuations: ValuationBreakdown, weights: ValuationWeights
) -> float:
    """Blend the four methods with weights normalized to sum to one."""
    total = weights.total
    if total == 0:
        return 0.0
    return (
        valuations.revenue_multiple * weights.revenue_multiple
        + valuations.ebitda_multiple * weights.ebitda_multiple
        + valuations.dcf * weights.dcf
        + valuations.vc_method * weights.vc_method
    ) / total


def calculate_year_valuations(
    revenue: float,
    expenses: float,
    sector_multiple: float,
    ebitda_multiple: float,
    config: ValuationConfig = DEFAULT_VALUATION_CONFIG,
) -> YearValuation:
    """Multiple based valuations for a single year; DCF and VC are left at zero."""
    ebitda = calculate_ebitda(revenue, expenses)
    return YearValuation(
        ebitda=ebitda,
        ebitda_margin=calculate_ebitda_margin(ebitda, revenue),
        free_cash_flow=calculate_fcf(ebitda, revenue, config.capex_ratio, config.tax_rate),
        valuations=ValuationBreakdown(
            revenue_multiple=revenue * sector_multiple,
            ebitda_multiple=ebitda * ebitda_multiple,
        ),
    )


def calculate_complete_valuations(
    yearly_data: Sequence[tuple[float, float]],
    sector_multiple: float,
    ebitda_multiple: float,
    config: ValuationConfig = DEFAULT_VALUATION_CONFIG,
) -> list[YearValuation]:
    """Full breakdown per projected year.

    Args:
        yearly_data: ``(revenue, expenses)`` per year, oldest first.
        sector_multiple: Revenue multiple for the sector.
        ebitda_multiple: EBITDA multiple for the sector.
        config: Discount, growth, return and weight assumptions.

    DCF and VC values are computed once over the whole horizon and phased
    in linearly, so year ``i`` carries ``(i + 1) / n`` of each.
    """
    years = [
        calculate_year_valuations(revenue, expenses, sector_multiple, ebitda_multiple, config)
        for revenue, expenses in yearly_data
    ]
    if not years:
        return []

    dcf_value = calculate_dcf_valuation(
        [y.free_cash_flow for y in years], config.discount_rate, config.terminal_growth_rate
    )
    vc_value = calculate_vc_valuation(
        years[-1].valuations.revenue_multiple, config.expected_roi
    )

    results = []
    for i, year in enumerate(years):
        ratio = (i + 1) / len(years)
        breakdown = replace(year.valuations, dcf=dcf_value * ratio, vc_method=vc_value * ratio)
        breakdown = replace(
            breakdown, weighted=calculate_weighted_valuation(breakdown, config.weights)
        )
        results.append(replace(year, valuations=breakdown))
    return results


def calculate_ownership_at_exit(
    entry_ownership: float, config: DilutionConfig = DEFAULT_DILUTION_CONFIG
) -> float:
    """Ownership fraction left after future rounds and a pre-money option pool."""
    rounds_factor = (1 - config.avg_dilution_per_round) ** config.expected_future_rounds
    esop_factor = 1 - config.esop_pool_size if config.esop_pre_money else 1
    return entry_ownership * rounds_factor * esop_factor


def calculate_exit_proceeds(
    exit_value: float,
    ownership_at_exit: float,
    investment_amount: float,
    config: DilutionConfig = DEFAULT_DILUTION_CONFIG,
) -> float:
    preference = investment_amount * config.liquidation_preference
    if config.participating_preferred:
        return preference + max(0.0, exit_value - preference) * ownership_at_exit
    return max(preference, exit_value * ownership_at_exit)


def calculate_moic_with_dilution(
    investment: float,
    equity_percentage: float,
    exit_value: float,
    dilution_config: DilutionConfig = DEFAULT_DILUTION_CONFIG,
    holding_years: float = 5,
) -> MOICResult:
    """Multiple on invested capital with and without dilution.

    ``equity_percentage`` is a percentage (10 means 10%); ownership and IRR
    in the result are percentages too.
    """
    if investment <= 0 or exit_value <= 0:
        return MOICResult(
            moic_no_dilution=0.0,
            moic_with_dilution=0.0,
            ownership_at_entry=equity_percentage,
            ownership_at_exit=0.0,
            dilution_factor=1.0,
            investor_proceeds=0.0,
            irr_estimate=0.0,
        )

    entry = equity_percentage / 100
    at_exit = calculate_ownership_at_exit(entry, dilution_config)
    dilution_factor = at_exit / entry if entry > 0 else 0.0
    proceeds = calculate_exit_proceeds(exit_value, at_exit, investment, dilution_config)

    moic = proceeds / investment
    irr = moic ** (1 / holding_years) - 1 if holding_years > 0 else 0.0

    return MOICResult(
        moic_no_dilution=exit_value * entry / investment,
        moic_with_dilution=moic,
        ownership_at_entry=entry * 100,
        ownership_at_exit=at_exit * 100,
        dilution_factor=dilution_factor,
        investor_proceeds=proceeds,
        irr_estimate=irr * 100,
    )
