"""
Configuration settings for the Accounting Ledger Backend.

This module handles application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Accounting Ledger Backend"
    api_version: str = "v1"
    debug: bool = True
    log_level: str = "INFO"

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./ledger.db"
    db_echo: bool = False
    db_pool_size: int = 20
    db_max_overflow: int = 10

    # Ledger / account rules
    cash_customer_code: str = "CASH"
    cash_customer_name: str = "Cash Customer"
    inactive_after_days: int = 15

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
