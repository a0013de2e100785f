"""Straight-line depreciation of fixed assets (Turkish tax procedure rules)."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Literal

DepreciationMethod = Literal["straight_line", "declining_balance"]

DAYS_PER_MONTH = 30.44
DEFAULT_USEFUL_LIFE_YEARS = 5
DEFAULT_DEPRECIATION_RATE = 20.0


@dataclass(frozen=True)
class DepreciationRate:
    years: int
    rate: float
    account_code: str


# Useful lives from the depreciation rate list, keyed by asset category.
VUK_DEPRECIATION_RATES: dict[str, DepreciationRate] = {
    "TELEFON": DepreciationRate(years=3, rate=33.33, account_code="255"),
    "BILGISAYAR": DepreciationRate(years=4, rate=25.0, account_code="255"),
    "MOBILYA": DepreciationRate(years=5, rate=20.0, account_code="255"),
    "ARAC": DepreciationRate(years=5, rate=20.0, account_code="254"),
    "EKIPMAN": DepreciationRate(years=10, rate=10.0, account_code="253"),
}


@dataclass(frozen=True)
class DepreciationResult:
    annual_depreciation: float
    accumulated_depreciation: float
    net_book_value: float
    months_used: int
    years_used: int
    is_fully_depreciated: bool


@dataclass(frozen=True)
class Asset:
    name: str
    value: float
    purchase_date: date | None
    useful_life: int


@dataclass(frozen=True)
class TotalDepreciation:
    total: DepreciationResult
    by_asset: list[tuple[str, DepreciationResult]]


def get_useful_life_by_category(category: str) -> int:
    rate = VUK_DEPRECIATION_RATES.get(category)
    return rate.years if rate else DEFAULT_USEFUL_LIFE_YEARS


def get_depreciation_rate_by_category(category: str) -> float:
    rate = VUK_DEPRECIATION_RATES.get(category)
    return rate.rate if rate else DEFAULT_DEPRECIATION_RATE


def _not_depreciated(asset_value: float) -> DepreciationResult:
    return DepreciationResult(
        annual_depreciation=0,
        accumulated_depreciation=0,
        net_book_value=asset_value,
        months_used=0,
        years_used=0,
        is_fully_depreciated=False,
    )


def calculate_depreciation(
    asset_value: float,
    purchase_date: date | None,
    useful_life_years: int,
    as_of: date,
    method: DepreciationMethod = "straight_line",
) -> DepreciationResult:
    """Depreciation up to ``as_of``.

    Months are counted as whole 30.44-day periods and capped at the useful
    life. Declining balance is not supported yet and is computed as
    straight line.
    """
    if purchase_date is None or asset_value <= 0 or useful_life_years <= 0:
        return _not_depreciated(asset_value)
    if purchase_date > as_of:
        return _not_depreciated(asset_value)

    months_used = max(0, math.floor((as_of - purchase_date).days / DAYS_PER_MONTH))
    total_months = useful_life_years * 12
    effective_months = min(months_used, total_months)

    annual = asset_value / useful_life_years
    accumulated = annual / 12 * effective_months
    return DepreciationResult(
        annual_depreciation=annual,
        accumulated_depreciation=accumulated,
        net_book_value=max(0.0, asset_value - accumulated),
        months_used=months_used,
        years_used=months_used // 12,
        is_fully_depreciated=months_used >= total_months,
    )


def calculate_total_depreciation(assets: Sequence[Asset], as_of: date) -> TotalDepreciation:
    results = [
        (
            asset.name,
            calculate_depreciation(asset.value, asset.purchase_date, asset.useful_life, as_of),
        )
        for asset in assets
    ]
    only = [result for _, result in results]
    total = DepreciationResult(
        annual_depreciation=sum(r.annual_depreciation for r in only),
        accumulated_depreciation=sum(r.accumulated_depreciation for r in only),
        net_book_value=sum(r.net_book_value for r in only),
        months_used=max((r.months_used for r in only), default=0),
        years_used=max((r.years_used for r in only), default=0),
        is_fully_depreciated=all(r.is_fully_depreciated for r in only),
    )
    return TotalDepreciation(total=total, by_asset=results)
