"""HTTP access logging with request metrics.

One log line per request, written after the full downstream chain has
completed:

- **info** for normal outcomes
- **error** when the handler attached errors or the status is 5xx, with the
  concatenated error messages appended
- an extra **warning** when the request exceeded the slow-request threshold,
  for every request, excluded paths and failed requests included

Every completed request is also counted and timed in the injected
``MetricsRegistry``, including requests whose log lines are suppressed.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from exapi.api.constants import EMPTY_QUERY_PLACEHOLDER, MAX_USER_AGENT_LENGTH
from exapi.api.request import client_ip, request_errors, request_host, trace_id
from exapi.core.config import LogConfig
from exapi.core.constants import MILLISECONDS_PER_SECOND
from exapi.core.metrics import MetricsRegistry
from exapi.core.types import LogContext

ACCESS_LOG_FORMAT = "trace_id {} => {} | {} | {} | {} | {} | {} | {}ms"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Middleware for access logging and request metrics.

    Args:
        app: The ASGI application.
        metrics: Registry receiving one observation per request.
        log_config: Logging configuration (threshold and excluded paths).
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        metrics: MetricsRegistry,
        log_config: LogConfig | None = None,
    ) -> None:
        super().__init__(app)
        self.metrics = metrics
        self.log_config = log_config or LogConfig()
        self.excluded_paths = set(self.log_config.excluded_paths)

    @staticmethod
    def _get_user_agent(request: Request) -> str:
        """Extract the user agent, truncated to keep log lines bounded."""
        ua = request.headers.get("user-agent", "")
        return ua[:MAX_USER_AGENT_LENGTH] if ua else "unknown"

    @staticmethod
    def _format_errors(errors: list[BaseException | str]) -> str:
        return "; ".join(str(err) for err in errors)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Time the request, then log it and record metrics.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response from the application.

        Raises:
            Exception: Any exception raised downstream is re-raised after it
                has been logged and counted.
        """
        start_time = time.perf_counter()
        path = request.url.path
        method = request.method
        query = request.url.query or EMPTY_QUERY_PLACEHOLDER
        fields: LogContext = {
            "trace_id": trace_id(request),
            "client_ip": client_ip(request),
            "host": request_host(request),
            "user_agent": self._get_user_agent(request),
            "method": method,
            "path": path,
            "query": query,
        }
        errors = request_errors(request)

        try:
            response = await call_next(request)
        except Exception as exc:
            latency = time.perf_counter() - start_time
            duration_ms = round(latency * MILLISECONDS_PER_SECOND, 2)
            self._warn_if_slow(fields, duration_ms)
            logger.bind(**fields, status_code=500, duration_ms=duration_ms).error(
                "Request failed: {}: {}",
                type(exc).__name__,
                exc,
            )
            self.metrics.observe_request(500, path, method, latency)
            raise

        latency = time.perf_counter() - start_time
        duration_ms = round(latency * MILLISECONDS_PER_SECOND, 2)
        status_code = response.status_code

        self._warn_if_slow(fields, duration_ms)
        if path not in self.excluded_paths:
            self._log_request(fields, status_code, duration_ms, errors)

        self.metrics.observe_request(status_code, path, method, latency)
        return response

    def _warn_if_slow(self, fields: LogContext, duration_ms: float) -> None:
        threshold_ms = self.log_config.slow_request_threshold_ms
        if duration_ms > threshold_ms:
            logger.bind(**fields, duration_ms=duration_ms).warning(
                "Slow request: api {} took {}ms (threshold {}ms)",
                fields["path"],
                duration_ms,
                threshold_ms,
            )

    def _log_request(
        self,
        fields: LogContext,
        status_code: int,
        duration_ms: float,
        errors: list[BaseException | str],
    ) -> None:
        bound = logger.bind(**fields, status_code=status_code, duration_ms=duration_ms)

        args = (
            fields["trace_id"],
            status_code,
            fields["client_ip"],
            fields["method"],
            fields["host"],
            fields["path"],
            fields["query"],
            duration_ms,
        )
        if errors or status_code >= 500:  # noqa: PLR2004 - server error floor
            error_text = self._format_errors(errors)
            bound.bind(errors=error_text).error(
                ACCESS_LOG_FORMAT + " <= err: {}", *args, error_text
            )
        else:
            bound.info(ACCESS_LOG_FORMAT, *args)
