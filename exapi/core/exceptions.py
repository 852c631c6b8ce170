"""Application error hierarchy for consistent envelope failures.

Handlers raise these errors for conditions the client is expected to see:
missing parameters, malformed bodies, absent resources. The recovery
middleware recognizes any ``ExAPIError`` and renders its message verbatim
as an envelope failure instead of treating it as a server fault.

Key components:
- **ErrorCode**: Application codes carried in the envelope ``code`` field
- **ExAPIError**: Base application error with message, code and context
- **ValidationError / NotFoundError**: Specialized application errors
- **bomb**: Shorthand that formats a message and raises ``ExAPIError``
"""

from enum import IntEnum
from typing import NoReturn

from exapi.core.types import ErrorContext


class ErrorCode(IntEnum):
    """Application-level codes written into the envelope ``code`` field.

    These are distinct from the transport status, which stays 200 for every
    envelope response.
    """

    SUCCESS = 200
    """The request completed normally."""

    APP_ERROR = 10400
    """A recognized application error, validation failure or bad input."""

    SERVER_ERROR = 10500
    """An unhandled failure recovered at the middleware boundary."""


class ExAPIError(Exception):
    """Base exception class for all application errors.

    Args:
        message: Human-readable message returned to the client
        code: Envelope code (defaults to ``ErrorCode.APP_ERROR``)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        code: int = ErrorCode.APP_ERROR,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.code = int(code)
        self.context = context or {}
        self.cause = cause

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        """Return the bare message, as shown to clients."""
        return self.message

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return f"{class_name}(code={self.code}, message='{self.message}'{context_str})"


class ValidationError(ExAPIError):
    """Exception raised when request input fails validation.

    Args:
        message: Description of the validation failure
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.APP_ERROR, context, cause)


class NotFoundError(ExAPIError):
    """Exception raised when a requested resource cannot be found.

    Args:
        message: Description of what resource was not found
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.APP_ERROR, context, cause)


def bomb(message: str, *args: object) -> NoReturn:
    """Raise an application error with a ``%``-formatted message.

    Args:
        message: Message template, formatted with ``args`` when given.
        *args: Values interpolated into the template.

    Raises:
        ExAPIError: Always.

    Examples:
        >>> bomb("query param[%s] is necessary", "page")
        Traceback (most recent call last):
        ...
        exapi.core.exceptions.ExAPIError: query param[page] is necessary
    """
    raise ExAPIError(message % args if args else message)
