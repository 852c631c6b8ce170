"""FastAPI application initialization and configuration module.

It handles:
- Logging setup and debug/release mode
- Middleware registration in the correct order
- Exception handler registration
- Health check endpoint
- Optional operational collaborators: metrics endpoint, profiling
  endpoints and the diagnostics agent

Middleware are executed in reverse order of registration. They are added
innermost first so that requests flow CORS → Trace ID → Access log →
Recovery → handler.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from loguru import logger

from exapi.api.debug import build_profiling_router
from exapi.api.middleware.cors import CORSMiddleware
from exapi.api.middleware.error_handler import register_exception_handlers
from exapi.api.middleware.recovery import RecoveryMiddleware
from exapi.api.middleware.request_logging import AccessLogMiddleware
from exapi.api.middleware.trace_id import TraceIDMiddleware
from exapi.api.schemas.envelope import Envelope
from exapi.api.utils.responses import ORJSONResponse, success
from exapi.core.agent import DiagnosticsAgent
from exapi.core.config import Settings, get_settings
from exapi.core.logging import setup_logging
from exapi.core.metrics import MetricsRegistry


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Starts the diagnostics agent when one is attached and stops it on
    shutdown.

    Args:
        app_instance: The FastAPI application instance.

    Yields:
        None: Nothing is yielded, this is just a lifespan context.
    """
    agent: DiagnosticsAgent | None = app_instance.state.diagnostics_agent
    if agent is not None:
        agent.start()

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    if agent is not None:
        agent.stop()
    logger.info("Application shutdown complete")


def _attach_metrics(application: FastAPI, settings: Settings) -> None:
    metrics: MetricsRegistry = application.state.metrics

    async def scrape_metrics() -> Response:
        return Response(content=metrics.render(), media_type=metrics.content_type)

    application.add_api_route(
        settings.metrics_config.path,
        scrape_metrics,
        methods=["GET"],
        include_in_schema=False,
    )
    logger.info("Metrics endpoint registered at {}", settings.metrics_config.path)


def _attach_profiling(application: FastAPI, settings: Settings) -> None:
    prefix = settings.profiling_config.resolve_path()
    application.include_router(build_profiling_router(), prefix=prefix)
    logger.info("Profiling endpoints registered at {}", prefix)


def create_app(
    settings: Settings | None = None, metrics: MetricsRegistry | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use
            get_settings().
        metrics: Optional metrics registry. A fresh one is created when not
            provided.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()
    if metrics is None:
        metrics = MetricsRegistry(namespace=settings.metrics_config.namespace)

    setup_logging(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.metrics = metrics
    application.state.diagnostics_agent = (
        DiagnosticsAgent(settings.diagnostics_config.address)
        if settings.diagnostics_config.enabled
        else None
    )

    register_exception_handlers(application)

    # Last added runs first
    application.add_middleware(RecoveryMiddleware)
    application.add_middleware(
        AccessLogMiddleware, metrics=metrics, log_config=settings.log_config
    )
    application.add_middleware(TraceIDMiddleware)
    if settings.cors_enabled:
        application.add_middleware(CORSMiddleware)

    @application.get("/health")
    async def health() -> Envelope:
        """Health check endpoint for probes and load balancers.

        Returns:
            Envelope: Success envelope with the service status.
        """
        return success({"status": "healthy"})

    if settings.metrics_config.enabled:
        _attach_metrics(application, settings)
    if settings.profiling_config.enabled:
        _attach_profiling(application, settings)

    return application


app = create_app()
