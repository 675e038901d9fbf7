"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class TokenLedgerConfig(BaseSettings):
    """Token ledger configuration"""

    # Token metadata, fixed at deployment
    token_name: str = "Simple Token"
    token_symbol: str = "ST"
    token_decimals: int = 18
    max_supply_tokens: int = 800_000_000  # Whole tokens, scaled by decimals

    # Account credited with the full supply on deployment
    creator_address: str = "0x0000000000000000000000000000000000000001"

    # Storage configuration
    storage_url: str = "sqlite:///token_ledger.db"  # or memory://

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_LEDGER_",
        env_file=".env",
        case_sensitive=False
    )


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
