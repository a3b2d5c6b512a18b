"""Shared pytest fixtures."""

from typing import Callable, Iterable, Union

import httpx
import pytest

from services.apiclient import ClientConfig
from tests.helpers import BASE_URI

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeApi:
    """Replays queued replies per (method, path) and records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._replies: dict[tuple[str, str], list[Reply]] = {}

    def queue(self, method: str, path: str, replies: Iterable[Reply]) -> "FakeApi":
        self._replies.setdefault((method, path), []).extend(replies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self._replies.get((request.method, request.url.path))
        if not replies:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")

        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def http_client(fake_api: FakeApi):
    client = fake_api.client()
    yield client
    client.close()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(base_uri=BASE_URI)
