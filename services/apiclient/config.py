"""
Client Configuration - Explicit Configuration Values

ClientConfig is an immutable value constructed by the caller and handed to the
TokenProvider and PaginatedFetcher. Nothing in the client reads the
environment; use ClientConfig.from_settings() at composition time to build one
from the application settings.

Usage:
    from services.apiclient.config import ClientConfig, Credentials

    config = ClientConfig(base_uri="https://api.example.com/", retry_limit=5)
    credentials = Credentials(username="user", password="secret", endpoint="login")
"""

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from services.apiclient.schema import ResponseSchema

if TYPE_CHECKING:
    from utils.config import Settings

DEFAULT_TIMEOUT = 20.0
DEFAULT_RETRY_LIMIT = 3
DEFAULT_PAGE_LIMIT = 10
DEFAULT_MAX_PAGES = 1000


class ClientConfig(BaseModel):
    """Connection and pagination policy shared by provider and fetcher."""

    model_config = ConfigDict(frozen=True)

    base_uri: str = Field(..., min_length=1, description="API base URI")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Per-request timeout (seconds)")
    retry_limit: int = Field(default=DEFAULT_RETRY_LIMIT, ge=1, description="Attempts per request")
    page_limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, description="Default records per page")
    response_schema: ResponseSchema = Field(default_factory=ResponseSchema)
    max_pages: Optional[int] = Field(
        default=DEFAULT_MAX_PAGES, ge=1, description="Safety bound on pages per aggregation"
    )
    partial_results: bool = Field(
        default=False, description="Return merged records instead of raising when a page fails"
    )
    test_mode: bool = Field(default=False, description="Stop aggregation after the first page")

    @field_validator("base_uri")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ClientConfig":
        """Build a config from environment-backed application settings."""
        return cls(
            base_uri=settings.API_BASE_URI,
            timeout=settings.API_TIMEOUT,
            retry_limit=settings.API_MAX_RETRIES,
            page_limit=settings.API_PAGE_LIMIT,
            max_pages=settings.API_MAX_PAGES or None,
            partial_results=settings.API_PARTIAL_RESULTS,
            test_mode=settings.API_TEST_MODE,
            response_schema=ResponseSchema(
                page_number=settings.SCHEMA_PAGE_NUMBER,
                page_limit=settings.SCHEMA_PAGE_LIMIT,
                total_records=settings.SCHEMA_TOTAL_RECORDS,
                records=settings.SCHEMA_RECORDS,
            ),
        )


class Credentials(BaseModel):
    """Username/password pair for the token exchange.

    ``endpoint`` is appended to the base URI for the login request.
    """

    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: SecretStr = SecretStr("")
    endpoint: str = ""
