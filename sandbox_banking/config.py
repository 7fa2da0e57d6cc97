"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class SandboxConfig(BaseSettings):
    """Sandbox data import configuration"""

    # Storage configuration
    use_sqlite: bool = True
    database_path: str = "sandbox.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Data import endpoint
    data_import_enabled: bool = False  # Must opt-in
    data_import_secret: str = ""  # Empty = no secret_token check

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Counterparty aliases
    public_alias_prefix: str = "ALIAS_"
    public_alias_length: int = 6

    # Entity field limits
    max_bank_field_length: int = 255
    max_email_length: int = 100
    max_display_name_length: int = 100

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "SANDBOX_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = SandboxConfig()


def get_config() -> SandboxConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> SandboxConfig:
    """Reload configuration from environment"""
    global config
    config = SandboxConfig()
    return config
