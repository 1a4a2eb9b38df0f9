"""Configuration package."""

from budgetal.config.settings import (
    AppSettings,
    AuthSettings,
    BudgetSettings,
    DatabaseSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuthSettings",
    "BudgetSettings",
    "DatabaseSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
