"""Recovery of unhandled failures into envelope responses.

This middleware is the last-resort boundary around every handler. Whatever
escapes a handler is turned into exactly one well-formed JSON envelope with
transport status 200; the serving process is never taken down.

Classification, in order:

1. **Application error** (``ExAPIError``): its message is returned as a
   failure envelope with the error's code. Nothing is logged here, this is
   an expected outcome.
2. **Broken pipe**: the failure (or an exception it wraps) is an ``OSError``
   with errno ``EPIPE`` or ``ECONNRESET``. The peer has gone away; the
   failure is logged without a stack trace and answered with ``请求broken``.
3. **Panic**: anything else. Logged with the stack trace and answered with
   ``请求panic``.

Both broken pipe and panic log a snapshot of the request head (request line
and headers, never the body) with sensitive headers redacted.
"""

import errno
from typing import Final

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from exapi.api.constants import (
    BROKEN_PIPE_MESSAGE,
    PANIC_MESSAGE,
    SENSITIVE_HEADERS,
)
from exapi.api.utils.responses import envelope_response, failure
from exapi.core.constants import REDACTED
from exapi.core.exceptions import ErrorCode, ExAPIError

BROKEN_PIPE_ERRNOS: Final[frozenset[int]] = frozenset({errno.EPIPE, errno.ECONNRESET})

# Bound on __cause__/__context__ hops, guards against cyclic chains
MAX_CHAIN_DEPTH: Final[int] = 16


def is_broken_pipe(exc: BaseException) -> bool:
    """Check whether a failure was caused by the peer dropping the connection.

    The exception and the exceptions it wraps (``__cause__`` first, then
    ``__context__``) are inspected for an ``OSError`` whose errno is
    ``EPIPE`` (broken pipe) or ``ECONNRESET`` (connection reset by peer).

    Args:
        exc: The unhandled exception.

    Returns:
        bool: True for broken pipe / connection reset failures.
    """
    current: BaseException | None = exc
    for _ in range(MAX_CHAIN_DEPTH):
        if current is None:
            return False
        if isinstance(current, OSError) and current.errno in BROKEN_PIPE_ERRNOS:
            return True
        current = current.__cause__ or current.__context__
    return False


def dump_request(request: Request) -> str:
    """Render the request line and headers as they arrived on the wire.

    Sensitive headers are redacted; the body is never read.

    Args:
        request: The request to describe.

    Returns:
        str: ``METHOD /path?query HTTP/x.y`` followed by one header per line.
    """
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    http_version = request.scope.get("http_version", "1.1")

    lines = [f"{request.method} {target} HTTP/{http_version}"]
    for name, value in request.headers.items():
        shown = REDACTED if name.lower() in SENSITIVE_HEADERS else value
        lines.append(f"{name}: {shown}")
    return "\r\n".join(lines) + "\r\n\r\n"


class RecoveryMiddleware(BaseHTTPMiddleware):
    """Middleware converting unhandled exceptions into envelope responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Run the downstream chain and recover from any failure.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The handler's response, or a recovered envelope.
        """
        try:
            return await call_next(request)
        except ExAPIError as exc:
            return envelope_response(failure(exc.code, exc.message))
        except Exception as exc:  # noqa: BLE001 - last-resort recovery boundary
            return self._recover(request, exc)

    @staticmethod
    def _recover(request: Request, exc: Exception) -> Response:
        snapshot = dump_request(request)

        if is_broken_pipe(exc):
            logger.bind(path=request.url.path, request=snapshot).error(
                "Recovery from brokenPipe ---> path: {}, err: {}",
                request.url.path,
                exc,
            )
            message = BROKEN_PIPE_MESSAGE
        else:
            logger.opt(exception=exc).bind(request=snapshot).error(
                "Recovery from panic ---> err: {}",
                exc,
            )
            message = PANIC_MESSAGE

        return envelope_response(failure(ErrorCode.SERVER_ERROR, message))
