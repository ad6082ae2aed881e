"""Configuration package."""

from task_planner.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    UserSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "UserSettings",
    "get_settings",
    "validate_all_settings",
]
