"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engines never read it; only the orchestrator and the storage
factory do, and they pass explicit values down.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TAGS = [
    "Food & Drink", "Transport", "Utilities", "Entertainment", "Shopping",
    "Salary", "Side Hustle", "Rent", "Education", "Health", "Gifts",
    "Owe", "Borrowed", "Investment",
]

DEFAULT_NAMES = [
    "Myself", "John Doe", "Jane Smith", "Employer", "Netflix", "MSEB", "Jio",
    "HP Gas", "PVR Cinemas", "Big Basket", "Myntra", "Client ABC", "Landlord",
    "Coursera", "Medical Store",
]


class StorageSettings(BaseSettings):
    """Where and how tracker data is stored."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_TRACKER_STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "json"] = Field(
        default="json",
        description="Storage backend: in-memory (ephemeral) or a JSON file"
    )
    data_path: Path = Field(
        default=Path("data/finance_tracker.json"),
        description="JSON document holding transactions, budgets, goals and settings"
    )
    audit_log_path: Path = Field(
        default=Path("data/audit.jsonl"),
        description="Append-only audit log (one JSON event per line)"
    )
    read_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts when reading the data file fails transiently"
    )

    @field_validator("data_path", "audit_log_path")
    @classmethod
    def validate_parent(cls, v: Path) -> Path:
        """Warn if the parent directory is missing (but don't fail - it is created on first write)."""
        if not v.parent.exists():
            import warnings
            warnings.warn(
                f"Directory {v.parent} does not exist yet. "
                "It will be created on the first write."
            )
        return v


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

    # Vocabulary seeded on first run
    default_tags: list[str] = Field(default_factory=lambda: list(DEFAULT_TAGS))
    default_names: list[str] = Field(default_factory=lambda: list(DEFAULT_NAMES))

    # Dashboard
    dashboard_window_days: int = Field(
        default=90,
        ge=1,
        description="Default time range of the net worth chart"
    )
    comparison_months: int = Field(
        default=6,
        ge=1,
        le=24,
        description="Months shown in the monthly comparison"
    )

    # Validation thresholds
    max_transaction_amount: int = Field(
        default=10_000_000,
        ge=1,
        description="Amounts above this are flagged for review (not rejected)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a transaction can be dated without a warning"
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

    # Sub-settings are built on access so a broken section only
    # fails the code path that needs it

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
