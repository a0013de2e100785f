"""Quarterly aggregation of annual projections."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from finplan.rounding import js_round

QUARTERS = ("q1", "q2", "q3", "q4")


@dataclass(frozen=True)
class QuarterlyAmounts:
    """Four quarter values plus their total."""

    q1: float
    q2: float
    q3: float
    q4: float
    total: float

    @classmethod
    def zero(cls) -> QuarterlyAmounts:
        return cls(q1=0, q2=0, q3=0, q4=0, total=0)

    @classmethod
    def of(cls, q1: float, q2: float, q3: float, q4: float) -> QuarterlyAmounts:
        """Build from quarter values, computing the total."""
        return cls(q1=q1, q2=q2, q3=q3, q4=q4, total=q1 + q2 + q3 + q4)

    def as_dict(self) -> dict[str, float]:
        return {"q1": self.q1, "q2": self.q2, "q3": self.q3, "q4": self.q4, "total": self.total}


@dataclass
class ProjectionItem:
    """A revenue or expense line in a simulation scenario."""

    category: str
    projected_amount: float
    projected_quarterly: Mapping[str, float | None] | None = None
    q1: float | None = None
    q2: float | None = None
    q3: float | None = None
    q4: float | None = None


def _first_present(*values: float | None) -> float:
    for value in values:
        if value is not None:
            return value
    return 0


def calculate_quarterly(item: ProjectionItem) -> QuarterlyAmounts:
    """Resolve each quarter from explicit projections, item fields, or an even split."""
    default_quarter = item.projected_amount / 4
    explicit = item.projected_quarterly or {}
    values = [
        _first_present(explicit.get(q), getattr(item, q), default_quarter) for q in QUARTERS
    ]
    return QuarterlyAmounts.of(*values)


def calculate_quarterly_with_growth(
    base_quarterly: Mapping[str, float | None] | None,
    base_amount: float,
    growth_multiplier: float,
) -> QuarterlyAmounts:
    default_quarter = base_amount / 4
    base = base_quarterly or {}
    values = [
        js_round(_first_present(base.get(q), default_quarter) * growth_multiplier)
        for q in QUARTERS
    ]
    return QuarterlyAmounts.of(*values)


def sum_quarterly(items: Iterable[QuarterlyAmounts]) -> QuarterlyAmounts:
    q1 = q2 = q3 = q4 = total = 0.0
    for item in items:
        q1 += item.q1
        q2 += item.q2
        q3 += item.q3
        q4 += item.q4
        total += item.total
    return QuarterlyAmounts(q1=q1, q2=q2, q3=q3, q4=q4, total=total)


def get_quarterly_total(values: Mapping[str, float | None]) -> float:
    """Sum of the quarters present in ``values``; missing quarters count as zero."""
    return sum(values.get(q) or 0 for q in QUARTERS)


def map_to_quarterly_data(items: Iterable[ProjectionItem]) -> list[QuarterlyAmounts]:
    return [calculate_quarterly(item) for item in items]


def array_to_quarterly(values: Sequence[float]) -> QuarterlyAmounts:
    """Build from a Q1..Q4 list; missing trailing entries are zero."""
    padded = list(values[:4]) + [0] * (4 - min(len(values), 4))
    return QuarterlyAmounts.of(*padded)


def quarterly_to_array(quarterly: QuarterlyAmounts) -> list[float]:
    return [quarterly.q1, quarterly.q2, quarterly.q3, quarterly.q4]


def calculate_qoq_growth(quarterly: QuarterlyAmounts) -> list[float]:
    """Quarter-over-quarter growth in percent for Q2, Q3 and Q4.

    Growth from a zero quarter is reported as 0.
    """
    values = quarterly_to_array(quarterly)
    growth = []
    for prev, current in zip(values, values[1:]):
        growth.append((current - prev) / prev * 100 if prev != 0 else 0)
    return growth


def round_quarterly(quarterly: QuarterlyAmounts) -> QuarterlyAmounts:
    return QuarterlyAmounts(
        q1=js_round(quarterly.q1),
        q2=js_round(quarterly.q2),
        q3=js_round(quarterly.q3),
        q4=js_round(quarterly.q4),
        total=js_round(quarterly.total),
    )


def from_annual(annual: float) -> QuarterlyAmounts:
    quarter = annual / 4
    return QuarterlyAmounts(q1=quarter, q2=quarter, q3=quarter, q4=quarter, total=annual)


def from_annual_rounded(annual: float) -> QuarterlyAmounts:
    """Rounded even split; the total is four rounded quarters, not ``annual``."""
    quarter = js_round(annual / 4)
    return QuarterlyAmounts(q1=quarter, q2=quarter, q3=quarter, q4=quarter, total=quarter * 4)


def distribute_quarterly_fair(total: float) -> QuarterlyAmounts:
    """Split ``total`` into whole quarters handing the remainder out from Q1.

    ``101`` becomes 26/25/25/25. For integer totals the quarters always sum
    to ``total``.
    """
    base = math.floor(total / 4)
    remainder = total - base * 4
    return QuarterlyAmounts(
        q1=base + (1 if remainder > 0 else 0),
        q2=base + (1 if remainder > 1 else 0),
        q3=base + (1 if remainder > 2 else 0),
        q4=base + (1 if remainder > 3 else 0),
        total=total,
    )
