"""Unit tests for the application error hierarchy."""

import pytest

from exapi.core.exceptions import (
    ErrorCode,
    ExAPIError,
    NotFoundError,
    ValidationError,
    bomb,
)


@pytest.mark.unit
class TestExAPIError:
    """Test cases for ExAPIError."""

    def test_defaults(self) -> None:
        """Test that application errors default to code 10400."""
        error = ExAPIError("not found")

        assert error.message == "not found"
        assert error.code == 10400
        assert error.context == {}
        assert error.cause is None

    def test_str_is_bare_message(self) -> None:
        """Test that str() returns the client-facing message only."""
        assert str(ExAPIError("boom", code=ErrorCode.SERVER_ERROR)) == "boom"

    def test_repr_includes_code_and_context(self) -> None:
        """Test the debugging representation."""
        error = ExAPIError("boom", context={"id": 1})

        assert repr(error) == (
            "ExAPIError(code=10400, message='boom', context={'id': 1})"
        )

    def test_cause_is_chained(self) -> None:
        """Test that the cause is exposed as __cause__."""
        cause = ValueError("bad")
        error = ExAPIError("wrapped", cause=cause)

        assert error.cause is cause
        assert error.__cause__ is cause

    @pytest.mark.parametrize("error_class", [ValidationError, NotFoundError])
    def test_subclasses_are_application_errors(
        self, error_class: type[ExAPIError]
    ) -> None:
        """Test that specialized errors keep the application code."""
        error = error_class("bad input")

        assert isinstance(error, ExAPIError)
        assert error.code == ErrorCode.APP_ERROR


@pytest.mark.unit
class TestBomb:
    """Test cases for bomb."""

    def test_formats_message(self) -> None:
        """Test that arguments are interpolated into the message."""
        with pytest.raises(ExAPIError, match=r"query param\[page\] is necessary"):
            bomb("query param[%s] is necessary", "page")

    def test_message_without_args_is_verbatim(self) -> None:
        """Test that a message without arguments is not formatted."""
        with pytest.raises(ExAPIError) as exc_info:
            bomb("100% broken")

        assert exc_info.value.message == "100% broken"
