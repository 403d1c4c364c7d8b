"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .transactions import TransactionStatus


class ClubLedgerConfig(BaseSettings):
    """Club ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="CLUB_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "club_ledger.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Statement rules
    excluded_statuses: str = ""  # Comma-separated, e.g. "cancelled"
    drift_tolerance: str = "0.00"

    @field_validator("excluded_statuses")
    @classmethod
    def validate_excluded_statuses(cls, value: str) -> str:
        known = {status.value for status in TransactionStatus}
        unknown = [s.strip() for s in value.split(",") if s.strip() and s.strip().lower() not in known]
        if unknown:
            raise ValueError(f"Unknown transaction statuses {unknown}; expected any of {sorted(known)}")
        return value

    @field_validator("drift_tolerance")
    @classmethod
    def validate_drift_tolerance(cls, value: str) -> str:
        try:
            tolerance = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"drift_tolerance must be a decimal amount, got {value!r}")
        if not tolerance.is_finite() or tolerance < 0:
            raise ValueError(f"drift_tolerance must be a non-negative amount, got {value!r}")
        return value

    def get_excluded_statuses(self) -> List[str]:
        """Parse the comma-separated excluded statuses"""
        return [s.strip().lower() for s in self.excluded_statuses.split(",") if s.strip()]

    def get_drift_tolerance(self) -> Decimal:
        """Drift tolerance as Decimal"""
        return Decimal(self.drift_tolerance)


# Global configuration instance
config = ClubLedgerConfig()


def get_config() -> ClubLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ClubLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = ClubLedgerConfig()
    return config
