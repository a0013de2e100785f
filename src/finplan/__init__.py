"""finplan: personal finance and daily planning backend."""

__version__ = "0.1.0"

from finplan.depreciation import Asset, calculate_depreciation, calculate_total_depreciation
from finplan.formatters import (
    format_compact,
    format_compact_try,
    format_compact_usd,
    format_full,
    format_full_try,
    format_full_usd,
)
from finplan.quarterly import (
    ProjectionItem,
    QuarterlyAmounts,
    calculate_quarterly,
    calculate_quarterly_with_growth,
    sum_quarterly,
)
from finplan.roi import ROIAnalysis, analyze_roi, calculate_break_even, calculate_payback
from finplan.valuation import (
    DilutionConfig,
    ValuationConfig,
    calculate_complete_valuations,
    calculate_moic_with_dilution,
)
from finplan.vat import VatSeparation, separate_vat, vat_from_gross, vat_from_net
from finplan.weeks import IsoWeek, get_iso_week_data, week_bounds, week_start

__all__ = [
    # Version
    "__version__",
    # Formatting
    "format_compact",
    "format_compact_try",
    "format_compact_usd",
    "format_full",
    "format_full_try",
    "format_full_usd",
    # Weeks
    "IsoWeek",
    "get_iso_week_data",
    "week_start",
    "week_bounds",
    # Quarterly
    "ProjectionItem",
    "QuarterlyAmounts",
    "calculate_quarterly",
    "calculate_quarterly_with_growth",
    "sum_quarterly",
    # ROI
    "ROIAnalysis",
    "analyze_roi",
    "calculate_payback",
    "calculate_break_even",
    # Valuation
    "ValuationConfig",
    "DilutionConfig",
    "calculate_complete_valuations",
    "calculate_moic_with_dilution",
    # Tax
    "VatSeparation",
    "separate_vat",
    "vat_from_gross",
    "vat_from_net",
    "Asset",
    "calculate_depreciation",
    "calculate_total_depreciation",
]
