"""Trace ID middleware for request correlation.

Key features:
- **Trace ID propagation**: Reuses the inbound ``X-Trace-Id`` or generates one
- **Context variables**: Stores the ID in a contextvar for code without the
  request object
- **Loguru integration**: Binds the ID to every log line of the request
- **Response headers**: Echoes the ID back to the client
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from exapi.api.constants import TRACE_ID_HEADER
from exapi.api.request import trace_id, trace_scope


class TraceIDMiddleware(BaseHTTPMiddleware):
    """Middleware to manage the per-request trace ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with the trace ID bound.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with the ``X-Trace-Id`` header.
        """
        current_trace_id = trace_id(request)

        # Both bindings end with the request
        with (
            trace_scope(current_trace_id),
            logger.contextualize(trace_id=current_trace_id),
        ):
            response = await call_next(request)
            response.headers[TRACE_ID_HEADER] = current_trace_id
            return response
