"""
API Client Service - Authenticated Paginated API Client

Responsibilities:
- Obtain a bearer token through one authenticated POST exchange (TokenProvider)
- Page through a REST list endpoint with that token, merging records (PaginatedFetcher)
- Map API specific pagination fields through a configurable ResponseSchema
- Translate transport, status and decoding failures into a single error taxonomy

Usage:
    from services.apiclient import ClientConfig, Credentials, PaginatedFetcher, TokenProvider

    config = ClientConfig(base_uri="https://api.example.com")
    provider = TokenProvider(config)
    credentials = Credentials(username="user", password="secret", endpoint="api/login")

    with PaginatedFetcher(config, token_provider=provider, credentials=credentials) as fetcher:
        records = fetcher.get_all_pages("api/students/list", {"limit": 50})
"""

from services.apiclient.config import ClientConfig, Credentials
from services.apiclient.errors import (
    ApiConnectionError,
    ApiError,
    AuthenticationError,
    ClientError,
    DecodeError,
    InvalidArgumentError,
    InvalidUriError,
    PaginationError,
    SchemaMismatchError,
    TokenMissingError,
)
from services.apiclient.fetcher import FetchState, PaginatedFetcher
from services.apiclient.schema import PageResult, ResponseSchema
from services.apiclient.token_provider import TokenProvider

__all__ = [
    "ApiConnectionError",
    "ApiError",
    "AuthenticationError",
    "ClientConfig",
    "ClientError",
    "Credentials",
    "DecodeError",
    "FetchState",
    "InvalidArgumentError",
    "InvalidUriError",
    "PageResult",
    "PaginatedFetcher",
    "PaginationError",
    "ResponseSchema",
    "SchemaMismatchError",
    "TokenMissingError",
    "TokenProvider",
]
