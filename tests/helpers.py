"""Helpers shared by the test modules."""

from typing import Any

import httpx
import orjson

BASE_URI = "https://api.example.com"


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=orjson.dumps(payload))
