"""Configuration package."""

from finflow.config.settings import (
    AppSettings,
    LedgerSettings,
    PlannerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "LedgerSettings",
    "PlannerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
