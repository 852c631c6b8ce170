"""Shared fixtures for integration tests.

Each test gets a fresh application built by ``create_app`` with its own
metrics registry, extended with a handful of demo routes that exercise the
middleware chain.
"""

import errno
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator

import pytest
from fastapi import FastAPI, HTTPException, Request
from httpx import ASGITransport, AsyncClient
from loguru import logger

from exapi.api.main import create_app
from exapi.api.request import add_request_error, current_trace_id, query_int
from exapi.api.schemas.envelope import Envelope
from exapi.api.utils.responses import success
from exapi.core.config import Settings, get_settings
from exapi.core.exceptions import NotFoundError
from exapi.core.logging import _state
from exapi.core.metrics import MetricsRegistry

type AppFactory = Callable[[Settings], FastAPI]
type ClientFactory = Callable[[FastAPI], Awaitable[AsyncClient]]


def add_demo_routes(app: FastAPI) -> None:
    """Attach routes covering each outcome of the request lifecycle."""

    @app.get("/x")
    async def echo(request: Request) -> Envelope:
        return success({"q": request.query_params.get("q")})

    @app.get("/trace")
    async def trace() -> Envelope:
        return success({"trace_id": current_trace_id()})

    @app.get("/items/{item_id}")
    async def item(item_id: int) -> Envelope:
        return success({"id": item_id})

    @app.get("/missing")
    async def missing() -> Envelope:
        raise NotFoundError("not found")

    @app.get("/page")
    async def page(request: Request) -> Envelope:
        return success({"page": query_int(request, "page")})

    @app.get("/panic")
    async def panic() -> Envelope:
        raise RuntimeError("kaboom")

    @app.get("/broken")
    async def broken() -> Envelope:
        raise BrokenPipeError(errno.EPIPE, "Broken pipe")

    @app.get("/degraded")
    async def degraded(request: Request) -> Envelope:
        add_request_error(request, "cache unavailable")
        return success("served from origin")

    @app.get("/forbidden")
    async def forbidden() -> Envelope:
        raise HTTPException(status_code=403, detail="nope")


@pytest.fixture
def metrics() -> MetricsRegistry:
    """Fresh metrics registry for the app under test."""
    return MetricsRegistry()


@pytest.fixture
def app_factory(metrics: MetricsRegistry) -> AppFactory:
    """Build apps with demo routes and the shared test registry."""

    def _create(settings: Settings) -> FastAPI:
        app = create_app(settings, metrics=metrics)
        add_demo_routes(app)
        return app

    return _create


@pytest.fixture
def app(app_factory: AppFactory) -> FastAPI:
    """Application with default settings and demo routes."""
    return app_factory(Settings())


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """HTTP client bound to the default test application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def client_factory() -> AsyncGenerator[ClientFactory]:
    """Factory creating clients for custom application instances."""
    clients: list[AsyncClient] = []

    async def _create_client(app: FastAPI) -> AsyncClient:
        transport = ASGITransport(app=app)
        ac = AsyncClient(transport=transport, base_url="http://test")
        clients.append(ac)
        return ac

    yield _create_client

    for ac in clients:
        await ac.aclose()


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Clear the settings cache before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None]:
    """Drop Loguru handlers and keep logging marked as configured.

    This prevents app creation from calling ``setup_logging`` and adding
    stdout handlers during tests.
    """
    logger.remove()
    _state.configured = True
    yield
    _state.configured = True
    logger.remove()
