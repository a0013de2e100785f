"""Configuration module for finplan."""

from finplan.config.categories_loader import (
    CategoryCatalog,
    CategorySpec,
    load_category_catalog,
)
from finplan.config.logging import bind_request_context, configure_logging
from finplan.config.settings import FlatSettings, get_settings

__all__ = [
    "FlatSettings",
    "get_settings",
    "configure_logging",
    "bind_request_context",
    "CategoryCatalog",
    "CategorySpec",
    "load_category_catalog",
]
