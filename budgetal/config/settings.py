"""
Configuration Management for Budgetal

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETAL_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///./budgetal.db",
        description="SQLAlchemy database URL"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class BudgetSettings(BaseSettings):
    """
    Annual budget provisioning rules.

    The allowed window is [current - years_back, current + years_ahead],
    never earlier than earliest_year.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUDGETAL_BUDGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    years_back: int = Field(
        default=2,
        ge=0,
        description="How many years before the current one can be provisioned"
    )
    years_ahead: int = Field(
        default=3,
        ge=0,
        description="How many years after the current one can be provisioned"
    )
    earliest_year: int = Field(
        default=2015,
        ge=1,
        description="No budget can ever be provisioned before this year"
    )
    default_item_names: list[str] = Field(
        default_factory=list,
        description="Categories every new annual budget starts with"
    )

    @field_validator('default_item_names')
    @classmethod
    def strip_item_names(cls, v: list[str]) -> list[str]:
        """Drop blank names so a trailing comma in config is harmless."""
        return [name.strip() for name in v if name and name.strip()]


class AuthSettings(BaseSettings):
    """Session authentication configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETAL_AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    session_header: str = Field(
        default="X-Budgetal-Session",
        min_length=1,
        description="Request header carrying the session token"
    )
    # JSON object in the environment, e.g. {"token-abc": 1}
    sessions: dict[str, int] = Field(
        default_factory=dict,
        description="Static session token to user id map"
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
        description="Root log level"
    )

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)

    @model_validator(mode='after')
    def normalize_log_level(self) -> 'AppSettings':
        self.log_level = self.log_level.upper()
        return self


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
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    {setting_name}_error entry for each invalid section.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "budget", "auth", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
