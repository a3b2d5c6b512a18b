"""
Paginated Fetcher - Authenticated Page Retrieval and Aggregation

Retrieves a list resource one page at a time with a bearer token and merges the
pages' records in fetch order.

Stop condition for get_all_pages():
- total_pages = 1 + floor(total_records / page_limit), computed once from the
  first response reporting both a non-zero total and page number
- stop after a page with no records
- stop once the next page number exceeds total_pages
- stop after the first page in test mode
- stop after config.max_pages pages (logged as a warning)

Failure policy for get_all_pages():
- authentication and invalid-argument errors always propagate
- a failure on the first page propagates the original error
- a failure on a later page raises PaginationError carrying the records merged
  so far, or, with config.partial_results, logs and returns them

Session state:
    IDLE -> AUTHENTICATING -> FETCHING -> DONE | FAILED
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Union

import httpx

from services.apiclient.config import ClientConfig, Credentials
from services.apiclient.errors import (
    STAGE_FETCH,
    ApiError,
    AuthenticationError,
    ClientError,
    InvalidArgumentError,
    PaginationError,
)
from services.apiclient.schema import PageResult, ResponseSchema, coerce_int, compute_total_pages
from services.apiclient.token_provider import TokenProvider
from services.apiclient.transport import (
    DEFAULT_USER_AGENT,
    build_uri,
    decode_json,
    send_with_retry,
    validate_uri,
)

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    DONE = "done"
    FAILED = "failed"


class PaginatedFetcher:
    """
    Fetches pages of a list endpoint with a bearer token.

    A token comes from, in order: the ``token`` argument or set_token(), then
    the token provider (which may itself hold a dummy token) using the stored
    credentials. Instances are not safe for concurrent use.
    """

    def __init__(
        self,
        config: ClientConfig,
        token_provider: Optional[TokenProvider] = None,
        credentials: Optional[Credentials] = None,
        http_client: Optional[httpx.Client] = None,
        token: Optional[str] = None,
    ) -> None:
        """
        Initialize fetcher.

        Args:
            config: Client configuration
            token_provider: Provider used to authenticate lazily
            credentials: Credentials handed to the provider
            http_client: Optional client to send requests with; one is created otherwise
            token: Optional pre-supplied bearer token
        """
        self.config = config
        self.token_provider = token_provider
        self.credentials = credentials
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client()
        self.schema = config.response_schema
        self.request_headers = self.get_default_request_headers()
        self.state = FetchState.IDLE
        self.current_page: Optional[int] = None
        self._token: Optional[str] = None

        if token:
            self.set_token(token)

    def get_default_request_headers(self) -> httpx.Headers:
        """Return the default headers for page requests."""
        return httpx.Headers({
            "Accept": "*/*",
            "Accept-Language": "en",
            "User-Agent": DEFAULT_USER_AGENT,
        })

    def set_request_headers(self, headers: Mapping[str, str]) -> None:
        """Replace the request headers, keeping an Authorization header already set."""
        if not headers:
            return

        authorization = self.request_headers.get("Authorization")
        self.request_headers = httpx.Headers(headers)

        if authorization is not None:
            self.request_headers["Authorization"] = authorization

    def set_response_schema(self, schema: Union[ResponseSchema, Mapping[str, str]]) -> None:
        """Set the response schema; mapping keys not given keep their current names.

        Raises:
            ValidationError: If the mapping names an unknown field or an empty name
        """
        if isinstance(schema, ResponseSchema):
            self.schema = schema
        else:
            self.schema = ResponseSchema(**{**self.schema.model_dump(), **dict(schema)})

    def get_response_schema(self) -> ResponseSchema:
        return self.schema

    def set_token(self, token: str) -> None:
        self._token = token
        self.request_headers["Authorization"] = f"Bearer {token}"

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def authenticate(self, credentials: Optional[Credentials] = None) -> None:
        """
        Obtain a bearer token and add it to the request headers.

        Args:
            credentials: Credentials to use, replacing the stored ones

        Raises:
            AuthenticationError: If no token provider is configured or credentials are missing
            ClientError: Any failure of the token exchange
        """
        if credentials is not None:
            self.credentials = credentials

        if self.token_provider is None:
            self.state = FetchState.FAILED
            raise AuthenticationError("No token provider configured and no token supplied")

        self.state = FetchState.AUTHENTICATING
        try:
            token = self.token_provider.get_token(self.credentials)
        except ClientError as e:
            self.state = FetchState.FAILED
            logger.error("Authentication failed", extra={"error": str(e)})
            raise

        self.set_token(token)

    def get_page(self, endpoint: str = "", params: Optional[Mapping[str, Any]] = None) -> list[Any]:
        """
        Retrieve the records of a single page.

        Args:
            endpoint: Path appended to the base URI
            params: Query parameters sent as-is

        Returns:
            The page's records, empty when the records field is empty or missing

        Raises:
            ClientError: Any authentication, transport, status or decoding failure
        """
        self._start_session()

        try:
            result = self._fetch_page(endpoint, dict(params or {}))
        except ClientError:
            self.state = FetchState.FAILED
            raise

        self.state = FetchState.DONE
        return result.records

    def get_all_pages(self, endpoint: str = "", params: Optional[Mapping[str, Any]] = None) -> list[Any]:
        """
        Retrieve and merge the records of all pages.

        Args:
            endpoint: Path appended to the base URI
            params: Query parameters; the page number and limit fields named by
                the response schema are set by the loop (a page number given
                here is the starting page)

        Returns:
            Records of every fetched page in fetch order

        Raises:
            ClientError: Authentication failures and first-page failures
            PaginationError: A later page failed and partial results are disabled
        """
        self._start_session()

        params = dict(params or {})
        page_key = self.schema.page_number
        limit_key = self.schema.page_limit

        page = coerce_int(params.get(page_key)) or 1
        limit = coerce_int(params.get(limit_key)) or self.config.page_limit
        params[limit_key] = limit

        results: list[Any] = []
        total_pages: Optional[int] = None
        fetched = 0

        while True:
            params[page_key] = page

            try:
                result = self._fetch_page(endpoint, params)
            except ClientError as e:
                return self._handle_page_failure(e, page, fetched, results)

            fetched += 1

            if total_pages is None and result.page_number and result.total_records:
                total_pages = compute_total_pages(result.total_records, limit)
                logger.debug(
                    "Computed total pages",
                    extra={"total_records": result.total_records, "limit": limit, "total_pages": total_pages},
                )
            elif total_pages is None and fetched == 1:
                logger.info(
                    "Response reports no total; paging until an empty page",
                    extra={"fields": [self.schema.total_records, self.schema.page_number]},
                )

            results.extend(result.records)
            page += 1

            if not result.records:
                break
            if total_pages is not None and page > total_pages:
                break
            if self.config.test_mode:
                logger.debug("Test mode: stopping after first page")
                break
            if self.config.max_pages is not None and fetched >= self.config.max_pages:
                logger.warning(
                    "Stopped paging at max_pages safety bound",
                    extra={"max_pages": self.config.max_pages, "records": len(results)},
                )
                break

        self.state = FetchState.DONE
        logger.info(
            "Fetched all pages",
            extra={"endpoint": endpoint, "pages": fetched, "total_pages": total_pages, "records": len(results)},
        )
        return results

    def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "PaginatedFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _start_session(self) -> None:
        self.state = FetchState.IDLE
        self.current_page = None

        if not self.has_token:
            self.authenticate()

        self.state = FetchState.FETCHING

    def _fetch_page(self, endpoint: str, params: dict[str, Any]) -> PageResult:
        uri = validate_uri(build_uri(self.config.base_uri, endpoint, params), STAGE_FETCH)
        self.current_page = coerce_int(params.get(self.schema.page_number))

        response = send_with_retry(
            self.http_client,
            "GET",
            uri,
            retry_limit=self.config.retry_limit,
            timeout=self.config.timeout,
            stage=STAGE_FETCH,
            headers=self.request_headers,
        )
        data = decode_json(response, STAGE_FETCH)

        if data.get("error") and data.get("message"):
            raise ApiError(
                f"Error {data['error']}: {data['message']}",
                stage=STAGE_FETCH,
                status_code=response.status_code,
            )

        result = self.schema.extract(data)
        logger.debug(
            "Fetched page",
            extra={"uri": uri, "page": self.current_page, "records": len(result.records)},
        )
        return result

    def _handle_page_failure(
        self,
        error: ClientError,
        page: int,
        fetched: int,
        results: list[Any],
    ) -> list[Any]:
        self.state = FetchState.FAILED

        if isinstance(error, InvalidArgumentError) or fetched == 0:
            raise error

        if self.config.partial_results:
            logger.warning(
                "Page request failed, returning partial results",
                extra={"page": page, "records": len(results), "error": str(error)},
            )
            return results

        raise PaginationError(
            f"Failed to fetch page {page} after {fetched} pages: {error.message}",
            page=page,
            records=results,
            stage=error.stage,
            status_code=error.status_code,
        ) from error
