"""
Token Provider - Bearer Token Exchange

Obtains a bearer token through one authenticated POST request:

    POST {base_uri}[/{endpoint}]
    {"username": ..., "password": ..., "type": "1"}

    200 {"token": "..."}

A dummy token may be configured instead, in which case no request is sent.
This lets the pagination code path run against APIs that need no
authentication at all.
"""

import logging
from typing import Mapping, Optional

import httpx
import orjson

from services.apiclient.config import ClientConfig, Credentials
from services.apiclient.errors import STAGE_AUTH, AuthenticationError, TokenMissingError
from services.apiclient.transport import DEFAULT_USER_AGENT, build_uri, decode_json, send_with_retry, validate_uri

logger = logging.getLogger(__name__)


class TokenProvider:
    """
    Fetches bearer tokens for a single API.

    Tokens are not cached, refreshed or expired here; every call to
    get_token() outside dummy-token mode performs a new exchange.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.Client] = None,
        dummy_token: Optional[str] = None,
    ) -> None:
        """
        Initialize token provider.

        Args:
            config: Client configuration
            http_client: Optional client to send requests with; one is created otherwise
            dummy_token: Optional fixed token returned instead of calling the API
        """
        self.config = config
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client()
        self.dummy_token = dummy_token or None
        self.auth_headers = self.get_default_auth_headers()

    def get_default_auth_headers(self) -> httpx.Headers:
        """Return the default headers for the authentication request."""
        return httpx.Headers({
            "Accept": "application/json, text/plain, */*",
            "Content-Type": "application/json",
            "User-Agent": DEFAULT_USER_AGENT,
        })

    def set_authentication_headers(self, headers: Mapping[str, str]) -> None:
        """Replace the authentication headers; empty mappings are ignored."""
        if headers:
            self.auth_headers = httpx.Headers(headers)

    def set_dummy_token(self, token: Optional[str]) -> None:
        """Return ``token`` from get_token() without contacting the API."""
        self.dummy_token = token or None

    def get_token(self, credentials: Optional[Credentials] = None) -> str:
        """
        Get a bearer token from the API.

        Args:
            credentials: Username, password and optional login endpoint

        Returns:
            The bearer token

        Raises:
            AuthenticationError: If username or password is missing
            InvalidUriError: If base URI and endpoint do not form an http(s) URL
            ApiConnectionError: If the transport failed on every attempt
            ApiError: If the API did not answer with status 200
            DecodeError: If the body is not a JSON object
            TokenMissingError: If the response carries no usable token
        """
        if self.dummy_token:
            logger.debug("Using dummy bearer token")
            return self.dummy_token

        if credentials is None or not credentials.username or not credentials.password.get_secret_value():
            raise AuthenticationError("Missing credentials for bearer token request")

        uri = validate_uri(build_uri(self.config.base_uri, credentials.endpoint), STAGE_AUTH)
        body = orjson.dumps({
            "username": credentials.username,
            "password": credentials.password.get_secret_value(),
            "type": "1",
        })

        logger.info("Requesting bearer token", extra={"uri": uri, "username": credentials.username})

        response = send_with_retry(
            self.http_client,
            "POST",
            uri,
            retry_limit=self.config.retry_limit,
            timeout=self.config.timeout,
            stage=STAGE_AUTH,
            headers=self.auth_headers,
            content=body,
        )
        data = decode_json(response, STAGE_AUTH)

        token = data.get("token")
        if not token or not isinstance(token, str):
            raise TokenMissingError(
                "Bearer token not found in API response",
                status_code=response.status_code,
            )

        logger.info("Bearer token obtained", extra={"uri": uri})
        return token

    def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "TokenProvider":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
