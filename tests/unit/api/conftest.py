"""Fixtures for API unit tests."""

from collections.abc import Callable
from typing import Any

import pytest
from pytest_mock import MockerFixture, MockType
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

type RequestFactory = Callable[..., Request]


@pytest.fixture
def make_request() -> RequestFactory:
    """Factory building real Starlette requests from an ASGI scope.

    Returns:
        RequestFactory: ``make_request(method="GET", path="/", query="",
            headers=None, path_params=None, client=("127.0.0.1", 50000),
            body=b"")``.
    """

    def _make(
        method: str = "GET",
        path: str = "/",
        query: str = "",
        headers: dict[str, str] | None = None,
        path_params: dict[str, Any] | None = None,
        client: tuple[str, int] | None = ("127.0.0.1", 50000),
        body: bytes = b"",
    ) -> Request:
        raw_headers = [
            (name.lower().encode(), value.encode())
            for name, value in (headers or {}).items()
        ]
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "query_string": query.encode(),
            "headers": raw_headers,
            "client": client,
            "server": ("testserver", 80),
            "path_params": path_params or {},
        }

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return _make


@pytest.fixture
def ok_response() -> Response:
    """Plain 200 response returned by downstream mocks."""
    return PlainTextResponse("ok")


@pytest.fixture
def call_next(mocker: MockerFixture, ok_response: Response) -> MockType:
    """Async mock standing in for the rest of the middleware chain."""
    return mocker.AsyncMock(return_value=ok_response)
