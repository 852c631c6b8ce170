"""Integration tests for metrics, profiling and the diagnostics agent."""

import socket
import tracemalloc
from collections.abc import Awaitable, Callable, Generator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from exapi.core.agent import DiagnosticsAgent
from exapi.core.config import (
    DiagnosticsConfig,
    MetricsConfig,
    ProfilingConfig,
    Settings,
)

type AppFactory = Callable[[Settings], FastAPI]
type ClientFactory = Callable[[FastAPI], Awaitable[AsyncClient]]


@pytest.fixture(autouse=True)
def restore_tracemalloc() -> Generator[None]:
    """Stop allocation tracing started by the profiling router."""
    was_tracing = tracemalloc.is_tracing()
    yield
    if not was_tracing and tracemalloc.is_tracing():
        tracemalloc.stop()


@pytest.mark.integration
class TestMetricsEndpoint:
    """Prometheus scrape endpoint."""

    async def test_scrape_reports_requests(
        self, app_factory: AppFactory, client_factory: ClientFactory
    ) -> None:
        """Test that served requests appear in the exposition."""
        settings = Settings(metrics_config=MetricsConfig(enabled=True))
        client = await client_factory(app_factory(settings))

        await client.get("/x?q=1")
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert (
            'exgin_req_count_total{method="GET",path="/x",status_code="200"} 1.0'
            in response.text
        )
        assert "exgin_req_latency_bucket" in response.text

    async def test_metrics_disabled(
        self, app_factory: AppFactory, client_factory: ClientFactory
    ) -> None:
        """Test that the endpoint is absent by default."""
        client = await client_factory(app_factory(Settings()))

        response = await client.get("/metrics")

        assert response.status_code == 404


@pytest.mark.integration
class TestProfilingEndpoints:
    """Profiling endpoints mounted on the application."""

    async def test_profiling_under_prefix(
        self, app_factory: AppFactory, client_factory: ClientFactory
    ) -> None:
        """Test that profiles answer under the configured prefix."""
        settings = Settings(
            profiling_config=ProfilingConfig(enabled=True, path="/debug/pprof")
        )
        client = await client_factory(app_factory(settings))

        index = await client.get("/debug/pprof/")
        profile = await client.get("/debug/pprof/profile", params={"seconds": 0.05})

        assert index.status_code == 200
        assert "threads: " in index.text
        assert profile.text.splitlines()[0].endswith("samples over 0.05s")

    async def test_profiling_rejects_out_of_range_duration(
        self, app_factory: AppFactory, client_factory: ClientFactory
    ) -> None:
        """Test that an out-of-range duration is rejected in an envelope."""
        settings = Settings(
            profiling_config=ProfilingConfig(enabled=True, path="/debug/pprof")
        )
        client = await client_factory(app_factory(settings))

        response = await client.get("/debug/pprof/profile", params={"seconds": 120})

        assert response.json()["code"] == 10400


@pytest.mark.integration
class TestApplicationLifespan:
    """Startup and shutdown of the diagnostics agent."""

    async def test_agent_lifecycle(self, app_factory: AppFactory) -> None:
        """Test that the agent listens only while the app runs."""
        settings = Settings(
            diagnostics_config=DiagnosticsConfig(enabled=True, address="127.0.0.1:0")
        )
        app = app_factory(settings)
        agent: DiagnosticsAgent = app.state.diagnostics_agent

        async with app.router.lifespan_context(app):
            assert agent.running is True
            address = agent.bound_address
            assert address is not None
            with socket.create_connection(address, timeout=5) as conn:
                conn.sendall(b"help\n")
                reply = conn.recv(4096).decode()
            assert reply.startswith("commands: help")

        assert agent.running is False

    async def test_lifespan_without_agent(self, app_factory: AppFactory) -> None:
        """Test that startup works with every toggle off."""
        app = app_factory(Settings())

        async with app.router.lifespan_context(app):
            assert app.state.diagnostics_agent is None
