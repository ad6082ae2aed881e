"""
Configuration Management for Task Planner

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from task_planner.models.records import EntityKind


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet holding planner data"
    )

    # One worksheet per entity kind
    tasks_sheet_name: str = Field(
        default="Tasks",
        description="Name of the sheet for tasks"
    )
    projects_sheet_name: str = Field(
        default="Projects",
        description="Name of the sheet for projects"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for categories"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    def sheet_name_for(self, kind: EntityKind) -> str:
        """Worksheet name holding records of the given kind."""
        return {
            EntityKind.TASK: self.tasks_sheet_name,
            EntityKind.PROJECT: self.projects_sheet_name,
            EntityKind.CATEGORY: self.categories_sheet_name,
        }[kind]


class UserSettings(BaseSettings):
    """
    Identity used by the static session provider.

    Leaving PLANNER_USER_ID unset means "signed out": analysis still
    works, but cleanup is refused.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLANNER_USER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    id: Optional[str] = Field(
        default=None,
        description="Identifier of the signed-in planner user"
    )
    email: Optional[str] = Field(
        default=None,
        description="Email of the signed-in planner user"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Cleanup behaviour
    auto_reanalyze_after_cleanup: bool = Field(
        default=True,
        description="Re-run duplicate analysis right after a successful cleanup"
    )
    max_logged_members: int = Field(
        default=5,
        ge=0,
        le=100,
        description="How many member ids to include per group in log lines"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def user(self) -> UserSettings:
        return UserSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "user", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
