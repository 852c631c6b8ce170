"""Shared fixtures for unit tests."""

import os
from collections.abc import Generator

import pytest
from loguru import logger
from pytest_mock import MockerFixture, MockType

from exapi.core.config import Settings, get_settings
from exapi.core.logging import _state

# Variables read by Settings; stripped so the host environment cannot leak in
SETTINGS_ENV_PREFIXES = (
    "APP_",
    "API_",
    "ENVIRONMENT",
    "DEBUG",
    "CORS_",
    "DOCS_URL",
    "REDOC_URL",
    "OPENAPI_URL",
    "LOG_CONFIG__",
    "METRICS_CONFIG__",
    "PROFILING_CONFIG__",
    "DIAGNOSTICS_CONFIG__",
)


@pytest.fixture
def runner_settings() -> Settings:
    """Settings used by the uvicorn runner tests.

    Returns:
        Settings: Release-mode settings bound to 127.0.0.1:3000.
    """
    return Settings(app_name="TestApp", api_host="127.0.0.1", api_port=3000)


@pytest.fixture
def runner_mocks(
    mocker: MockerFixture,
    runner_settings: Settings,
    monkeypatch: pytest.MonkeyPatch,
) -> dict[str, MockType]:
    """Patch everything ``main.main`` touches outside the process.

    ``PORT`` is removed so tests opt in to the platform override.

    Returns:
        dict[str, MockType]: Mocks keyed by the name they replace.
    """
    monkeypatch.delenv("PORT", raising=False)
    return {
        "get_settings": mocker.patch(
            "main.get_settings", return_value=runner_settings
        ),
        "setup_logging": mocker.patch("main.setup_logging"),
        "logger": mocker.patch("main.logger"),
        "uvicorn_run": mocker.patch("main.uvicorn.run"),
    }


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Start and finish every test with an empty settings cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Hide settings-related environment variables from the test.

    Monkeypatch restores them on teardown.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        pytest.MonkeyPatch: The monkeypatch instance for env manipulation.
    """
    for key in [k for k in os.environ if k.startswith(SETTINGS_ENV_PREFIXES)]:
        monkeypatch.delenv(key)
    return monkeypatch


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[None]:
    """Drop all Loguru handlers and keep logging marked as configured.

    Application factories then skip ``setup_logging`` and nothing leaks to
    stdout during the test.
    """
    logger.remove()
    _state.configured = True
    yield
    _state.configured = True
    logger.remove()
