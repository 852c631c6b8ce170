"""Root conftest.py for the ExAPI test suite.

This file contains project-wide fixtures and pytest configuration.
"""

import logging
from collections.abc import Generator
from typing import Any

import pytest
from loguru import logger


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture
def log_records() -> Generator[list[dict[str, Any]]]:
    """Capture Loguru records emitted during the test.

    The sink is synchronous, so records are available as soon as the
    logging call returns.

    Yields:
        list[dict[str, Any]]: Captured records in emission order.
    """
    records: list[dict[str, Any]] = []

    def sink(message: Any) -> None:  # noqa: ANN401 - loguru message object
        records.append(message.record)

    handler_id = logger.add(sink, level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def isolate_stdlib_root_logger() -> Generator[None]:
    """Run each test without root handlers installed at import time.

    Importing ``exapi.api.main`` builds the module-level app, which calls
    ``setup_logging`` and routes the stdlib root logger into Loguru. The
    handlers are detached for the test and restored afterwards.
    """
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    root.handlers = []
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)
