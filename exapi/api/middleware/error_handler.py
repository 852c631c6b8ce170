"""Envelope rendering for errors FastAPI handles before the middleware.

FastAPI converts request validation failures and ``HTTPException`` inside
its own exception layer, so they never reach the recovery middleware. These
handlers give them the same envelope shape:

- request validation errors become application errors (code ``10400``,
  transport status 200) with a ``参数不合法`` message
- ``HTTPException`` mirrors its status in the envelope code. Only routing
  failures (404 unknown path, 405 wrong method) keep that status on the
  wire, handler-raised ones are sent with status 200
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from exapi.api.constants import INVALID_PARAMS_MESSAGE
from exapi.api.utils.responses import envelope_response, failure
from exapi.core.exceptions import ErrorCode


def _describe_validation_errors(exc: RequestValidationError) -> str:
    """Flatten validation errors to ``field: message`` pairs."""
    parts = []
    for error in exc.errors():
        field_path = error.get("loc", ())
        field_name = ".".join(str(loc) for loc in field_path[1:]) or "root"
        parts.append(f"{field_name}: {error.get('msg', 'Invalid value')}")
    return "; ".join(parts)


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError exceptions.

    Args:
        request: The FastAPI request that caused the exception
        exc: The RequestValidationError exception to handle

    Returns:
        Response: Failure envelope with code 10400

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    message = f"{INVALID_PARAMS_MESSAGE}: {_describe_validation_errors(exc)}"
    logger.debug(
        "Request validation failed",
        path=request.url.path,
        method=request.method,
    )
    return envelope_response(failure(ErrorCode.APP_ERROR, message))


def _raised_by_router(request: Request, exc: HTTPException) -> bool:
    """Tell routing failures apart from ``HTTPException`` raised in handlers.

    The router raises 404 before any endpoint is matched, so the scope has no
    ``endpoint``. Its 405 always carries the ``Allow`` header.
    """
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return "endpoint" not in request.scope
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "Allow" in (exc.headers or {})
    return False


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException.

    Routing failures (unknown path, wrong method) keep their HTTP status.
    An ``HTTPException`` raised by a handler is an application outcome and
    is answered with transport status 200. Both mirror the HTTP status in
    the envelope ``code``.

    Args:
        request: The FastAPI request that caused the exception
        exc: The HTTPException to handle

    Returns:
        Response: Failure envelope carrying the HTTP status as its code

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    routing_error = _raised_by_router(request, exc)
    logger.debug(
        "HTTP exception",
        path=request.url.path,
        method=request.method,
        status=exc.status_code,
        routing_error=routing_error,
    )
    response = envelope_response(
        failure(exc.status_code, str(exc.detail)),
        status_code=exc.status_code if routing_error else status.HTTP_200_OK,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def register_exception_handlers(app: FastAPI) -> None:
    """Register the envelope exception handlers with the application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    logger.debug("Exception handlers registered")
