"""Run the ExAPI application under uvicorn."""

import os
from typing import Any

import uvicorn
from loguru import logger

from exapi.api.main import app
from exapi.core.config import get_settings
from exapi.core.logging import setup_logging

APP_IMPORT_PATH = "exapi.api.main:app"


def uvicorn_log_config() -> dict[str, Any]:
    """Logging config handing uvicorn's loggers to Loguru.

    Access lines are dropped here; the access log middleware writes them.
    """
    intercepted = {"handlers": ["default"], "level": "INFO", "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {"class": "exapi.core.logging.InterceptHandler"},
        },
        "loggers": {
            "uvicorn": dict(intercepted),
            "uvicorn.error": dict(intercepted),
            "uvicorn.access": {"handlers": [], "level": "WARNING", "propagate": False},
        },
    }


def main() -> None:
    """Serve the application with settings from the environment."""
    settings = get_settings()
    setup_logging(settings)

    # Container platforms hand out the port through PORT
    port = int(os.environ.get("PORT", settings.api_port))
    mode = "debug" if settings.debug else "release"
    logger.info(
        "Starting Uvicorn on http://{}:{} ({} mode)", settings.api_host, port, mode
    )

    # Reload needs an import string; release serves the object directly
    uvicorn.run(
        APP_IMPORT_PATH if settings.debug else app,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=uvicorn_log_config(),
    )


if __name__ == "__main__":
    main()
