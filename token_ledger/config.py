"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TokenLedgerConfig(BaseSettings):
    """Token ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Token metadata (display only)
    token_name: str = "Deflationary Token"
    token_symbol: str = "DFT"
    token_decimals: int = Field(default=0, ge=0, le=255)

    # Issuance, applied once when the storage holds no ledger yet
    initial_supply: int = Field(default=1_000_000, gt=0)
    issuer_account: str = "issuer"

    # Rounding unit for the transfer tax; fixed for the life of a ledger
    base_percent: int = Field(default=100, gt=0)

    # Storage configuration
    storage_backend: str = "memory"  # memory or sqlite
    database_path: str = "token_ledger.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr


# Global configuration instance
config = TokenLedgerConfig()


def get_config() -> TokenLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TokenLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = TokenLedgerConfig()
    return config
