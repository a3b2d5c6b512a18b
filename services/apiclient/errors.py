"""
Client Errors - Failure Taxonomy for the API Client

Every failure surfaced by the client derives from ClientError and records the
stage it happened in ("auth" for the token exchange, "fetch" for page
requests) plus the HTTP status code when one was received.

Hierarchy:
    ClientError
    ├── InvalidArgumentError
    │   ├── AuthenticationError   (missing credentials, no token source)
    │   └── InvalidUriError       (constructed URI failed validation)
    ├── ApiConnectionError        (transport failure after retries)
    ├── ApiError                  (non-200 status or error payload)
    ├── DecodeError               (body is not a JSON object)
    ├── TokenMissingError         (token field absent or empty)
    ├── SchemaMismatchError       (pagination fields missing, strict mode only)
    └── PaginationError           (a page failed mid-aggregation)
"""

from typing import Any, Optional

STAGE_AUTH = "auth"
STAGE_FETCH = "fetch"


class ClientError(Exception):
    """Base error for all API client failures."""

    def __init__(
        self,
        message: str,
        *,
        stage: str = STAGE_FETCH,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.stage}] {self.message} (status={self.status_code})"
        return f"[{self.stage}] {self.message}"


class InvalidArgumentError(ClientError):
    """Caller supplied input the client cannot work with."""


class AuthenticationError(InvalidArgumentError):
    """Credentials are missing or no token could be sourced."""

    def __init__(self, message: str, *, stage: str = STAGE_AUTH, **kwargs: Any) -> None:
        super().__init__(message, stage=stage, **kwargs)


class InvalidUriError(InvalidArgumentError):
    """The constructed request URI is not a valid http(s) URL."""


class ApiConnectionError(ClientError):
    """The transport failed on every attempt of the retry budget."""

    def __init__(self, message: str, *, attempts: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class ApiError(ClientError):
    """The API answered with a non-200 status or an error payload."""


class DecodeError(ClientError):
    """The response body could not be decoded into a JSON object."""


class TokenMissingError(ClientError):
    """A well-formed token response did not carry a usable token."""

    def __init__(self, message: str, *, stage: str = STAGE_AUTH, **kwargs: Any) -> None:
        super().__init__(message, stage=stage, **kwargs)


class SchemaMismatchError(ClientError):
    """A response lacks the pagination fields named by the response schema."""

    def __init__(self, message: str, *, missing: Optional[list[str]] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.missing = missing or []


class PaginationError(ClientError):
    """A page request failed while aggregating several pages.

    The originating error is chained as ``__cause__``. Records merged before the
    failure are kept on ``records`` so callers never lose them silently.
    """

    def __init__(self, message: str, *, page: int, records: list[Any], **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.page = page
        self.records = records
