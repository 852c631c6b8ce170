"""The uniform response envelope returned by every JSON endpoint.

The transport status of an envelope response is 200 whether the request
succeeded or not; clients branch on ``code`` instead:

- ``200`` with message ``请求成功``: success, ``data`` holds the payload
- ``10400``: application error, ``message`` is meant for the user
- ``10500``: unhandled failure recovered by the middleware
"""

from typing import Any

from pydantic import BaseModel, Field

from exapi.core.exceptions import ErrorCode


class Envelope(BaseModel):
    """Standard response body for all API endpoints."""

    data: Any = Field(
        default=None,
        description="Response payload, null on failure",
        examples=[{"id": 1}, None],
    )

    message: str = Field(
        ...,
        description="Human-readable outcome message",
        examples=["请求成功", "not found", "请求panic"],
    )

    timestamp: int = Field(
        ...,
        description="Response creation time in seconds since the epoch",
        examples=[1700000000],
    )

    code: int = Field(
        ...,
        description="Application status code, independent of the HTTP status",
        examples=[200, 10400, 10500],
    )

    @property
    def is_success(self) -> bool:
        """Whether the envelope reports success."""
        return self.code == ErrorCode.SUCCESS
