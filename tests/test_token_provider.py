"""Tests for the bearer token exchange."""

import httpx
import orjson
import pytest

from services.apiclient import (
    ApiConnectionError,
    ApiError,
    AuthenticationError,
    ClientConfig,
    ClientError,
    Credentials,
    DecodeError,
    InvalidUriError,
    TokenMissingError,
    TokenProvider,
)
from tests.helpers import BASE_URI, json_response

LOGIN_PATH = "/api/login"


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="student", password="secret", endpoint="/api/login/")


@pytest.fixture
def provider(config, http_client) -> TokenProvider:
    return TokenProvider(config, http_client=http_client)


class TestGetToken:

    def test_returns_token_from_response(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [json_response({"token": "T"})])

        assert provider.get_token(credentials) == "T"

    def test_posts_credentials_as_json(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [json_response({"token": "T"})])

        provider.get_token(credentials)

        (request,) = fake_api.calls("POST", LOGIN_PATH)
        assert str(request.url) == f"{BASE_URI}/api/login"
        assert request.headers["content-type"] == "application/json"
        assert orjson.loads(request.content) == {"username": "student", "password": "secret", "type": "1"}

    def test_posts_to_base_uri_without_endpoint(self, provider, fake_api):
        fake_api.queue("POST", "/", [json_response({"token": "T"})])

        assert provider.get_token(Credentials(username="a", password="b")) == "T"
        assert fake_api.requests[0].url.host == "api.example.com"
        assert fake_api.requests[0].url.path == "/"

    @pytest.mark.parametrize(
        "reply",
        [
            json_response({"token": ""}),
            json_response({"token": False}),
            json_response({"token": None}),
            json_response({"user": "student"}),
            httpx.Response(200, content=b"{not json"),
            httpx.Response(200, content=b"null"),
        ],
    )
    def test_never_returns_falsy_success(self, provider, fake_api, credentials, reply):
        fake_api.queue("POST", LOGIN_PATH, [reply])

        with pytest.raises(ClientError) as exc_info:
            provider.get_token(credentials)

        assert exc_info.value.stage == "auth"

    def test_missing_token_field(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [json_response({"token": ""})])

        with pytest.raises(TokenMissingError):
            provider.get_token(credentials)

    def test_invalid_json(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [httpx.Response(200, content=b"<html>")])

        with pytest.raises(DecodeError):
            provider.get_token(credentials)

    def test_non_200_status(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [json_response({"token": "T"}, status_code=401)])

        with pytest.raises(ApiError) as exc_info:
            provider.get_token(credentials)

        assert exc_info.value.status_code == 401
        assert exc_info.value.stage == "auth"

    @pytest.mark.parametrize(
        "credentials",
        [None, Credentials(username="", password="secret"), Credentials(username="student", password="")],
    )
    def test_missing_credentials(self, provider, fake_api, credentials):
        with pytest.raises(AuthenticationError):
            provider.get_token(credentials)

        assert fake_api.requests == []

    def test_base_uri_without_scheme(self, fake_api, http_client):
        provider = TokenProvider(ClientConfig(base_uri="api.example.com"), http_client=http_client)

        with pytest.raises(InvalidUriError) as exc_info:
            provider.get_token(Credentials(username="u", password="p", endpoint="login"))

        assert exc_info.value.stage == "auth"
        assert fake_api.requests == []


class TestRetries:

    def test_succeeds_on_third_attempt(self, provider, fake_api, credentials):
        fake_api.queue(
            "POST",
            LOGIN_PATH,
            [
                httpx.ConnectError("refused"),
                httpx.ReadTimeout("timed out"),
                json_response({"token": "T"}),
            ],
        )

        assert provider.get_token(credentials) == "T"
        assert len(fake_api.calls("POST", LOGIN_PATH)) == 3

    def test_gives_up_after_retry_limit(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [httpx.ConnectError("refused")] * 3)

        with pytest.raises(ApiConnectionError) as exc_info:
            provider.get_token(credentials)

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert len(fake_api.requests) == 3

    def test_retry_limit_is_configurable(self, fake_api, http_client, credentials):
        provider = TokenProvider(ClientConfig(base_uri=BASE_URI, retry_limit=1), http_client=http_client)
        fake_api.queue("POST", LOGIN_PATH, [httpx.ConnectError("refused"), json_response({"token": "T"})])

        with pytest.raises(ApiConnectionError):
            provider.get_token(credentials)

        assert len(fake_api.requests) == 1

    def test_http_errors_are_not_retried(self, provider, fake_api, credentials):
        fake_api.queue("POST", LOGIN_PATH, [json_response({}, status_code=500), json_response({"token": "T"})])

        with pytest.raises(ApiError):
            provider.get_token(credentials)

        assert len(fake_api.requests) == 1


class TestDummyToken:

    def test_dummy_token_skips_network(self, config, fake_api, http_client):
        provider = TokenProvider(config, http_client=http_client, dummy_token="dummy")

        assert provider.get_token() == "dummy"
        assert fake_api.requests == []

    def test_set_dummy_token(self, provider, fake_api, credentials):
        provider.set_dummy_token("dummy")
        assert provider.get_token(credentials) == "dummy"

        provider.set_dummy_token(None)
        fake_api.queue("POST", LOGIN_PATH, [json_response({"token": "real"})])
        assert provider.get_token(credentials) == "real"


class TestHeaders:

    def test_set_authentication_headers_replaces_defaults(self, provider, fake_api, credentials):
        provider.set_authentication_headers({"Content-Type": "application/json", "X-Access-Level": "74"})
        fake_api.queue("POST", LOGIN_PATH, [json_response({"token": "T"})])

        provider.get_token(credentials)

        headers = fake_api.requests[0].headers
        assert headers["x-access-level"] == "74"
        assert "text/plain" not in headers.get("accept", "")

    def test_empty_headers_are_ignored(self, provider):
        defaults = provider.get_default_auth_headers()

        provider.set_authentication_headers({})

        assert dict(provider.auth_headers) == dict(defaults)
