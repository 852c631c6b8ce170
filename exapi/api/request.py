"""Per-request accessors and parameter helpers.

Accessors read request metadata the way the middleware and handlers need
it: the trace ID, the client IP behind proxies, the requested host, and the
list of non-fatal errors a handler attached while processing.

Parameter helpers read query/path values and raise ``ExAPIError`` when a
value is missing or malformed, so the failure surfaces to the client as a
``10400`` envelope.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import cast

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request

from exapi.api.constants import (
    DEFAULT_PAGE_LIMIT,
    FORWARDED_FOR_HEADER,
    INVALID_PARAMS_MESSAGE,
    TRACE_ID_HEADER,
)
from exapi.core.exceptions import ValidationError, bomb

_current_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)


def new_trace_id() -> str:
    """Generate a fresh UUID4 trace ID."""
    return str(uuid.uuid4())


def current_trace_id() -> str | None:
    """Return the trace ID of the request being served, if any.

    Readable from code that has no access to the request object, for
    example service functions called by a handler.
    """
    return _current_trace_id.get()


@contextmanager
def trace_scope(value: str) -> Iterator[None]:
    """Make ``value`` the current trace ID until the block exits."""
    token = _current_trace_id.set(value)
    try:
        yield
    finally:
        _current_trace_id.reset(token)


def trace_id(request: Request) -> str:
    """Return the trace ID for this request, generating one if needed.

    The inbound ``X-Trace-Id`` header wins. Otherwise the ID assigned earlier
    in the request is reused, or a fresh one is generated and stored so that
    later callers observe the same value.

    Args:
        request: The incoming request.

    Returns:
        str: The trace ID.
    """
    inbound = request.headers.get(TRACE_ID_HEADER)
    if inbound:
        return inbound

    assigned = getattr(request.state, "trace_id", None)
    if assigned:
        return cast("str", assigned)

    generated = new_trace_id()
    request.state.trace_id = generated
    return generated


def client_ip(request: Request) -> str:
    """Return the client IP, preferring the ``X-Forwarded-For`` header.

    Args:
        request: The incoming request.

    Returns:
        str: First forwarded address, the peer address, or ``unknown``.
    """
    forwarded_for = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host
    return "unknown"


def request_host(request: Request) -> str:
    """Return the ``Host`` header, falling back to the parsed URL host."""
    return request.headers.get("host") or request.url.hostname or ""


def request_errors(request: Request) -> list[BaseException | str]:
    """Return the ordered list of errors attached during processing."""
    errors = getattr(request.state, "errors", None)
    if errors is None:
        errors = []
        request.state.errors = errors
    return cast("list[BaseException | str]", errors)


def add_request_error(request: Request, err: BaseException | str) -> None:
    """Attach a non-fatal error to the request.

    The access log reports attached errors at error level; the response
    itself is unaffected.
    """
    request_errors(request).append(err)


def query_str(request: Request, key: str, *default: str) -> str:
    """Return a non-empty query value, its default, or fail.

    Raises:
        ExAPIError: When the value is absent and no default is given.
    """
    value = request.query_params.get(key)
    if value:
        return value
    if not default:
        bomb("query param[%s] is necessary", key)
    return default[0]


def query_str_null(request: Request, key: str) -> str:
    """Return the query value or an empty string."""
    return request.query_params.get(key) or ""


def query_int(request: Request, key: str, *default: int) -> int:
    """Return a query value parsed as an integer.

    Raises:
        ExAPIError: When the value is not an integer, or absent without a
            default.
    """
    value = request.query_params.get(key)
    if value:
        try:
            return int(value)
        except ValueError:
            bomb("cannot convert [%s] to int", value)
    if not default:
        bomb("query param[%s] is necessary", key)
    return default[0]


def query_bool(request: Request, key: str, *default: bool) -> bool:
    """Return True only for the query value ``1``.

    Non-integer values read as False; an absent value reads as the default,
    or False without one.
    """
    value = request.query_params.get(key)
    if value:
        try:
            return int(value) == 1
        except ValueError:
            return False
    return default[0] if default else False


def path_param_str(request: Request, field: str) -> str:
    """Return a non-empty path parameter.

    Raises:
        ExAPIError: When the parameter is empty or missing.
    """
    value = request.path_params.get(field)
    if not value:
        bomb("url param[%s] is null", field)
    return str(value)


def path_param_int(request: Request, field: str) -> int:
    """Return a path parameter parsed as an integer.

    Raises:
        ExAPIError: When the parameter is missing or not an integer.
    """
    value = path_param_str(request, field)
    try:
        return int(value)
    except ValueError:
        bomb("cannot convert %s to int", value)


def offset(request: Request, limit: int) -> int:
    """Translate the ``page`` query parameter into a row offset.

    Args:
        request: The incoming request.
        limit: Page size; non-positive values fall back to 10.

    Returns:
        int: ``(page - 1) * limit`` with ``page`` defaulting to 1.
    """
    if limit <= 0:
        limit = DEFAULT_PAGE_LIMIT
    page = query_int(request, "page", 1)
    return (page - 1) * limit


def header(request: Request, key: str) -> str:
    """Return a request header or an empty string."""
    return request.headers.get(key, "")


async def bind_json[ModelT: BaseModel](
    request: Request, model: type[ModelT]
) -> ModelT:
    """Parse and validate the JSON body into ``model``.

    Raises:
        ValidationError: When the body is not valid JSON for the model.
    """
    body = await request.body()
    try:
        return model.model_validate_json(body)
    except PydanticValidationError as exc:
        msg = f"{INVALID_PARAMS_MESSAGE}: {exc}"
        raise ValidationError(msg, cause=exc) from exc
