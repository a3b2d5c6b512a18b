"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Settings are read once at composition time by the application entry points
and turned into explicit values (see ClientConfig.from_settings); library code
never imports them.

Usage:
    from utils.config import get_settings

    settings = get_settings()
    base_uri = settings.API_BASE_URI
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Configuration
    API_BASE_URI: str = Field(default="https://aen.gov.gr")
    API_USERNAME: str = Field(default="")
    API_PASSWORD: str = Field(default="")
    API_TOKEN_ENDPOINT: str = Field(default="api/ldap/login")
    API_DUMMY_TOKEN: Optional[str] = Field(default=None)
    API_TIMEOUT: float = Field(default=20.0)
    API_MAX_RETRIES: int = Field(default=3)

    # Pagination Configuration
    API_PAGE_LIMIT: int = Field(default=10)
    API_MAX_PAGES: int = Field(default=1000)
    API_PARTIAL_RESULTS: bool = Field(default=False)
    API_TEST_MODE: bool = Field(default=False)

    # Response Schema (API field names)
    SCHEMA_PAGE_NUMBER: str = Field(default="page")
    SCHEMA_PAGE_LIMIT: str = Field(default="limit")
    SCHEMA_TOTAL_RECORDS: str = Field(default="total")
    SCHEMA_RECORDS: str = Field(default="content")

    # User Sync Configuration
    STUDENTS_ENDPOINT: str = Field(default="api/ws/students/list")
    PROFILE_ID_FIELD: str = Field(default="am")
    EMAIL_PREFIX: str = Field(default="")

    # File System Paths
    RAW_DIR: str = Field(default="/app/data/raw_users")
    SQLITE_PATH: str = Field(default="/app/data/db/app.db")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")

    # Application Metadata
    APP_NAME: str = Field(default="pagination-client")
    APP_VERSION: str = Field(default="0.1.0")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance shared by the entry point's composition root
    """
    return Settings()
