"""Utilities for loading the transaction category catalog from YAML."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

CATEGORIES_PATH = Path(__file__).resolve().parent / "categories.yaml"

BALANCE_IMPACTS = (
    "equity_increase",
    "equity_decrease",
    "asset_increase",
    "liability_increase",
    "none",
)


@dataclass(frozen=True)
class CategorySpec:
    """A single category code and its accounting effect."""

    code: str
    category_type: str
    affects_pnl: bool
    balance_impact: str
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class CategoryCatalog:
    """All category codes grouped by type."""

    categories: dict[str, CategorySpec]

    @property
    def codes(self) -> list[str]:
        return list(self.categories)

    @property
    def types(self) -> list[str]:
        seen: list[str] = []
        for spec in self.categories.values():
            if spec.category_type not in seen:
                seen.append(spec.category_type)
        return seen

    def get(self, code: str) -> CategorySpec | None:
        return self.categories.get(code)

    def by_type(self, category_type: str) -> list[CategorySpec]:
        return [
            spec for spec in self.categories.values() if spec.category_type == category_type
        ]

    def restricted_to(self, codes: list[str]) -> CategoryCatalog:
        """Catalog limited to ``codes``; unknown codes are ignored.

        Returns ``self`` when nothing in ``codes`` is known.
        """
        kept = {code: spec for code, spec in self.categories.items() if code in codes}
        return CategoryCatalog(categories=kept) if kept else self


def _parse_catalog(data: dict[str, Any], source: str) -> CategoryCatalog:
    types = data.get("types") or {}
    if not isinstance(types, dict):
        raise ValueError(f"{source}: types must be a mapping")

    raw_categories = data.get("categories") or {}
    if not isinstance(raw_categories, dict):
        raise ValueError(f"{source}: categories must be a mapping")

    categories: dict[str, CategorySpec] = {}
    for code, entry in raw_categories.items():
        if not isinstance(entry, dict):
            raise ValueError(f"{source}: category {code!r} must be a mapping")

        category_type = entry.get("type")
        type_defaults = types.get(category_type)
        if type_defaults is None:
            raise ValueError(f"{source}: unknown type {category_type!r} for {code!r}")

        balance_impact = entry.get("balance_impact", type_defaults.get("balance_impact"))
        if balance_impact not in BALANCE_IMPACTS:
            raise ValueError(
                f"{source}: invalid balance_impact {balance_impact!r} for {code!r}"
            )

        keywords = entry.get("keywords") or []
        categories[str(code)] = CategorySpec(
            code=str(code),
            category_type=str(category_type),
            affects_pnl=bool(entry.get("affects_pnl", type_defaults.get("affects_pnl"))),
            balance_impact=str(balance_impact),
            keywords=tuple(str(k) for k in keywords),
        )

    return CategoryCatalog(categories=categories)


@lru_cache
def load_category_catalog(path: Path | None = None) -> CategoryCatalog:
    """Load the category catalog.

    Args:
        path: Optional YAML path. Defaults to the bundled catalog.

    Returns:
        Parsed catalog keyed by category code.
    """
    catalog_path = path or CATEGORIES_PATH
    raw = catalog_path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    return _parse_catalog(data, catalog_path.name)
