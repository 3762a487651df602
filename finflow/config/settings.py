"""
Configuration Management for finflow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself takes explicit arguments; these settings only supply
the defaults the caller hands over (rollover policy, planner horizon,
log level).
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finflow.models.ledger import RolloverSettings


class LedgerSettings(BaseSettings):
    """Default rollover policy for newly created ledger months."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    auto_rollover: bool = Field(
        default=True,
        description="Carry each month's ending balance into the next month"
    )
    allow_negative_rollover: bool = Field(
        default=False,
        description="Carry negative balances instead of flooring them at zero"
    )

    def rollover(self) -> RolloverSettings:
        """The policy as the engine's input model."""
        return RolloverSettings(
            auto_rollover=self.auto_rollover,
            allow_negative_rollover=self.allow_negative_rollover,
        )


class PlannerSettings(BaseSettings):
    """Planner and analytics windows."""

    model_config = SettingsConfigDict(
        env_prefix="PLANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    horizon_months: int = Field(
        default=12,
        ge=1,
        le=36,
        description="Months shown in the month-by-month plan"
    )
    health_lookback_months: int = Field(
        default=3,
        ge=1,
        le=24,
        description="Months of history used for savings rate and health score"
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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for engine logs"
    )
    currency: str = Field(
        default="PKR",
        min_length=3,
        max_length=3,
        description="ISO currency code used for display"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def effective_log_level(self) -> str:
        """Debug mode always logs at DEBUG."""
        return "DEBUG" if self.debug_mode else self.log_level


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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def planner(self) -> PlannerSettings:
        return PlannerSettings()

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


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    "<name>_error" entry for every group that failed.
    Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    for name in ("ledger", "planner", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
