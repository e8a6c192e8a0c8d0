"""
Configuration management for the reporting service.

All values can be overridden with environment variables or a `.env` file.
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Document store
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "inventory"
    mongodb_server_selection_timeout_ms: int = 5000

    # Report pagination
    report_default_page_size: int = 50
    report_max_page_size: int = 200

    # Exports are run without pagination, bounded by this cap
    max_export_rows: int = 50000

    # Pipelines slower than this are logged as warnings
    slow_query_threshold_ms: int = 1000

    # Environment Settings
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000"]

    @field_validator("report_max_page_size", "report_default_page_size", "max_export_rows")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
