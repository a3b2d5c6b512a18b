"""
HTTP Transport Helpers - URI Construction, Retries and Decoding

Shared plumbing for the TokenProvider and the PaginatedFetcher:
- URI construction from base URI, endpoint and query parameters
- Basic URL validation
- Fixed-count immediate retries on transport failures (tenacity)
- Status checking and orjson decoding of response bodies
"""

import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

import httpx
import orjson
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_none,
)

from services.apiclient.errors import ApiConnectionError, ApiError, DecodeError, InvalidUriError

logger = logging.getLogger(__name__)

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0 Safari/537.36"
)


def build_uri(base_uri: str, endpoint: str = "", params: Optional[Mapping[str, Any]] = None) -> str:
    """Join base URI, endpoint and query string.

    Args:
        base_uri: Base URI without trailing slash
        endpoint: Optional path appended after a single '/'
        params: Optional query parameters

    Returns:
        ``base_uri[/endpoint][?query]``
    """
    endpoint = endpoint.strip("/") if endpoint else ""
    uri = f"{base_uri}/{endpoint}" if endpoint else base_uri
    if params:
        uri = f"{uri}?{urlencode(params, doseq=True)}"
    return uri


def validate_uri(uri: str, stage: str) -> str:
    """Raise InvalidUriError unless ``uri`` is an absolute http(s) URL."""
    if not uri:
        raise InvalidUriError("Invalid URI: empty", stage=stage)
    try:
        _URL_ADAPTER.validate_python(uri)
    except ValidationError as e:
        raise InvalidUriError(f"Invalid URI: {uri}", stage=stage) from e
    return uri


def send_with_retry(
    client: httpx.Client,
    method: str,
    uri: str,
    *,
    retry_limit: int,
    timeout: float,
    stage: str,
    headers: Optional[httpx.Headers] = None,
    content: Optional[bytes] = None,
) -> httpx.Response:
    """Send a request, retrying immediately on transport failures.

    Timeouts are transport failures and count against the budget. HTTP error
    statuses are returned as-is and are never retried.

    Raises:
        ApiConnectionError: If every attempt failed at the transport level
    """
    retrying = Retrying(
        stop=stop_after_attempt(retry_limit),
        wait=wait_none(),
        retry=retry_if_exception_type(httpx.TransportError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

    try:
        for attempt in retrying:
            with attempt:
                response = client.request(
                    method,
                    uri,
                    headers=headers,
                    content=content,
                    timeout=timeout,
                )
    except RetryError as e:
        cause = e.last_attempt.exception()
        logger.error(
            "Failed to connect to API",
            extra={"method": method, "uri": uri, "attempts": retry_limit, "error": str(cause)},
        )
        raise ApiConnectionError(
            f"Failed to connect to API after {retry_limit} attempts",
            attempts=retry_limit,
            stage=stage,
        ) from cause

    return response


def decode_json(response: httpx.Response, stage: str) -> dict[str, Any]:
    """Check the status and decode a JSON object body.

    Raises:
        ApiError: If the status code is not 200
        DecodeError: If the body is not valid JSON or not a JSON object
    """
    if response.status_code != 200:
        raise ApiError(
            f"API request failed with status code: {response.status_code}",
            stage=stage,
            status_code=response.status_code,
        )

    try:
        data = orjson.loads(response.content)
    except orjson.JSONDecodeError as e:
        raise DecodeError(
            f"Failed to decode JSON from API response: {e}",
            stage=stage,
            status_code=response.status_code,
        ) from e

    if not isinstance(data, dict):
        raise DecodeError(
            f"Expected a JSON object in API response, got {type(data).__name__}",
            stage=stage,
            status_code=response.status_code,
        )

    return data
