"""Type aliases for dynamic data structures throughout the application.

All types defined here should be JSON-serializable to support logging
and API responses.
"""

from typing import Any

# JSON-compatible type that represents any valid JSON value
# Used for envelope payloads and custom response bodies
type JsonValue = (
    dict[str, "JsonValue"] | list["JsonValue"] | str | int | float | bool | None
)

# Context dictionary for logging additional information
type LogContext = dict[str, Any]  # JSON-serializable values

# Context dictionary for error details attached to application errors
type ErrorContext = dict[str, Any]
