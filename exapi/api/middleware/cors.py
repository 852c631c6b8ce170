"""CORS middleware with a fixed, permissive header set."""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from exapi.api.constants import CORS_HEADERS, JSON_CONTENT_TYPE


class CORSMiddleware(BaseHTTPMiddleware):
    """Middleware to add CORS headers for cross-origin callers.

    When the request carries a non-empty ``Origin`` header the response gets
    the full ``Access-Control-*`` header set and the request is marked as a
    JSON exchange (``request.state.content_type``).

    ``OPTIONS`` requests are answered immediately with ``204 No Content``;
    the rest of the chain never runs for them.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Apply CORS headers and short-circuit preflight requests.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler.

        Returns:
            Response: The downstream response, or an empty 204 for OPTIONS.
        """
        has_origin = bool(request.headers.get("origin"))
        if has_origin:
            request.state.content_type = JSON_CONTENT_TYPE

        if request.method == "OPTIONS":
            response = Response(status_code=status.HTTP_204_NO_CONTENT)
        else:
            response = await call_next(request)

        if has_origin:
            response.headers.update(CORS_HEADERS)

        return response
