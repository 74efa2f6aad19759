"""
Configuration Management for the Personal Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The business rules that were hard-coded in the dashboard (salary keywords,
cutoff day, fallback category) become settings so they can be tuned
without touching the engine.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Business rules of the ledger engine."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    fallback_category: str = Field(
        default="Other",
        min_length=1,
        description="Category that absorbs transactions of deleted categories"
    )
    transfer_category: str = Field(
        default="Transfer",
        min_length=1,
        description="Category stamped on both halves of a transfer"
    )
    salary_keywords: str = Field(
        default="gehalt,lohn,salary",
        description="Comma-separated keywords identifying salary income"
    )
    salary_cutoff_day: int = Field(
        default=25,
        ge=1,
        le=31,
        description="Salary posted on or after this day counts for the next month"
    )
    transfer_out_prefix: str = Field(
        default="To",
        description="Default description prefix of the source half of a transfer"
    )
    transfer_in_prefix: str = Field(
        default="From",
        description="Default description prefix of the destination half of a transfer"
    )

    @property
    def salary_keywords_list(self) -> list[str]:
        """Get salary keywords as a lower-cased list."""
        return [
            kw.strip().lower()
            for kw in self.salary_keywords.split(",")
            if kw.strip()
        ]


class StorageSettings(BaseSettings):
    """Key-value persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|file)$",
        description="Which key-value backend to use"
    )
    data_dir: str = Field(
        default="./data",
        description="Directory holding one JSON file per key (file backend)"
    )
    key_prefix: str = Field(
        default="aurimea_",
        description="Prefix applied to every key the ledger writes"
    )
    write_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How often a failed file write is attempted"
    )

    @field_validator('data_dir')
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Reject paths that point at an existing regular file."""
        path = Path(v)
        if path.exists() and not path.is_dir():
            raise ValueError(f"Storage data_dir is not a directory: {v}")
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level of emitted log records"
    )
    json_output: bool = Field(
        default=True,
        description="Render log records as JSON (console renderer otherwise)"
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

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


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

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "storage", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
