"""
Configuration Management for the Bookkeeping Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every setting has a working default, so the engine runs with no
environment at all (tests, the self-check). Deployments override
through LEDGER_*, STORAGE_* and BACKUP_* variables or a .env file.
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CogsPolicy(str, Enum):
    """When cost of goods sold is recognized."""
    PERIODIC = "periodic"      # At physical counts (default)
    PERPETUAL = "perpetual"    # At sale time, for products linked to inventory


class LedgerSettings(BaseSettings):
    """Accounting behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    identity_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Maximum allowed drift in Assets = Equity + Net Income"
    )
    cogs_policy: CogsPolicy = Field(
        default=CogsPolicy.PERIODIC,
        description="periodic: COGS at counts; perpetual: COGS at sale time"
    )
    currency_symbol: str = Field(
        default="₡",
        description="Symbol used in human-readable descriptions"
    )


class StorageSettings(BaseSettings):
    """Local persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    state_path: Path = Field(
        default=Path("data/state.json"),
        description="File holding the persisted application state"
    )
    audit_log_path: Path = Field(
        default=Path("data/audit.jsonl"),
        description="Append-only audit trail (JSON lines)"
    )


class BackupSettings(BaseSettings):
    """Automatic daily backup configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BACKUP_",
        extra="ignore"
    )

    directory: Path = Field(
        default=Path("data/backups"),
        description="Directory where backup files are written"
    )
    filename_prefix: str = Field(
        default="jardin-erp-backup",
        description="Backup files are named <prefix>-YYYY-MM-DD.json"
    )
    retention: int = Field(
        default=10,
        ge=1,
        le=365,
        description="How many automatic backups to keep"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Written into backup metadata"
    )
    schema_version: str = Field(
        default="1.0.0",
        description="Snapshot schema version written into backup metadata"
    )

    @field_validator("filename_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix becomes part of a filename."""
        v = v.strip()
        if not v or "/" in v or "\\" in v:
            raise ValueError("Backup filename prefix must be a plain, non-empty name")
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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def backup(self) -> BackupSettings:
        return BackupSettings()

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

    for name in ("ledger", "storage", "backup", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
