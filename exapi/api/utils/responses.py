"""Envelope builders and JSON response helpers.

This module owns the envelope contract:

- ``success(data)`` builds a ``code=200`` envelope with message ``请求成功``
- ``failure(code, message)`` builds an envelope with ``data=None``
- ``render_message(value)`` maps the ``RenderInput`` variant (nothing, a
  message string or an error) onto one of the two

The ``*_response`` helpers wrap envelopes in ``ORJSONResponse`` with
transport status 200, for handlers that prefer returning a response object
over returning an ``Envelope`` model.
"""

import time
from dataclasses import dataclass
from typing import Any, Self, assert_never

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from exapi.api.constants import SUCCESS_MESSAGE
from exapi.api.schemas.envelope import Envelope
from exapi.core.exceptions import ErrorCode
from exapi.core.types import JsonValue


class ORJSONResponse(JSONResponse):
    """FastAPI Response class using orjson for JSON serialization.

    Handles datetime objects, UUIDs and Pydantic models (including the
    ``Envelope``) and keeps non-ASCII messages unescaped.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump()

        # Use consistent sorting for predictable output
        return orjson.dumps(content, option=orjson.OPT_SORT_KEYS)


@dataclass(frozen=True, slots=True)
class StringMessage:
    """A plain message to be shown to the client as an application error."""

    text: str


@dataclass(frozen=True, slots=True)
class ErrorValue:
    """An error reduced to its client-facing description."""

    description: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> Self:
        """Build the variant from an exception.

        Application errors render as their bare message.
        """
        return cls(str(exc))


type RenderInput = StringMessage | ErrorValue | None


def now_unix() -> int:
    """Current time in whole seconds since the epoch."""
    return int(time.time())


def success(data: Any = None, code: int = ErrorCode.SUCCESS) -> Envelope:  # noqa: ANN401 - opaque payload
    """Build a success envelope.

    Args:
        data: Payload to return to the client.
        code: Application code, ``200`` unless the caller needs another.

    Returns:
        Envelope: ``{data, "请求成功", now, code}``.
    """
    return Envelope(
        data=data,
        message=SUCCESS_MESSAGE,
        timestamp=now_unix(),
        code=int(code),
    )


def failure(code: int, message: str) -> Envelope:
    """Build a failure envelope.

    Args:
        code: Application error code.
        message: Client-facing message.

    Returns:
        Envelope: ``{None, message, now, code}``.
    """
    return Envelope(data=None, message=message, timestamp=now_unix(), code=int(code))


def render_message(value: RenderInput) -> Envelope:
    """Render the outcome of a handler into an envelope.

    Args:
        value: ``None`` for success, otherwise the message or error to report.

    Returns:
        Envelope: A success envelope or a ``10400`` failure envelope.
    """
    match value:
        case None:
            return success(None)
        case StringMessage(text=text):
            return failure(ErrorCode.APP_ERROR, text)
        case ErrorValue(description=description):
            return failure(ErrorCode.APP_ERROR, description)
        case _:
            assert_never(value)


def envelope_response(envelope: Envelope, status_code: int = 200) -> ORJSONResponse:
    """Wrap an envelope in a JSON response."""
    return ORJSONResponse(status_code=status_code, content=envelope)


def data_response(
    data: Any = None,  # noqa: ANN401 - opaque payload
    err: BaseException | None = None,
) -> ORJSONResponse:
    """Respond with ``data`` on success or with ``err`` rendered as a failure.

    Args:
        data: Payload returned when ``err`` is None.
        err: Error to report instead of the payload.

    Returns:
        ORJSONResponse: Envelope response with transport status 200.
    """
    return code_data_response(ErrorCode.SUCCESS, data, err)


def code_data_response(
    code: int,
    data: Any = None,  # noqa: ANN401 - opaque payload
    err: BaseException | None = None,
) -> ORJSONResponse:
    """Like ``data_response`` with a custom success code.

    Args:
        code: Application code used for the success envelope.
        data: Payload returned when ``err`` is None.
        err: Error to report instead of the payload.

    Returns:
        ORJSONResponse: Envelope response with transport status 200.
    """
    if err is None:
        return envelope_response(success(data, code))
    return envelope_response(render_message(ErrorValue.from_exception(err)))


def error_data_response(
    code: int,
    data: Any,  # noqa: ANN401 - opaque payload
    err: BaseException | str | None,
) -> ORJSONResponse:
    """Respond with both a payload and an error message.

    Args:
        code: Application code.
        data: Payload kept alongside the error.
        err: Error whose text becomes the message.

    Returns:
        ORJSONResponse: Envelope response with transport status 200.
    """
    message = "" if err is None else str(err)
    return envelope_response(
        Envelope(data=data, message=message, timestamp=now_unix(), code=int(code))
    )


def abort_response(
    message: str, *args: object, code: int = ErrorCode.APP_ERROR
) -> ORJSONResponse:
    """Respond with a failure envelope built from a ``%``-formatted message.

    Args:
        message: Message template.
        *args: Values interpolated into the template.
        code: Application error code.

    Returns:
        ORJSONResponse: Envelope response with transport status 200.
    """
    return envelope_response(failure(code, message % args if args else message))


def custom_response(obj: JsonValue, status_code: int = 200) -> ORJSONResponse:
    """Respond with an arbitrary JSON body outside of the envelope."""
    return ORJSONResponse(status_code=status_code, content=obj)
