"""Structured logging system built on Loguru.

This module configures Loguru as the single logging backend for the
application and every library it runs alongside.

Features:
- **Structured logging**: JSON output with a consistent schema
- **Context propagation**: Fields bound with ``logger.contextualize`` (the
  trace ID, request fields) appear on every line of a request
- **Console output**: Inline context for development, colour suppressed
  unless explicitly enabled
- **Standard library integration**: uvicorn and other stdlib loggers are
  routed through Loguru

Formatter types:
- **console**: Human-readable with inline context (development)
- **json**: One JSON object per line (everything else)
"""

from __future__ import annotations

import inspect
import json
import logging
import sys
import traceback
from dataclasses import dataclass, field
from typing import Any, Final, cast

from loguru import logger

from exapi.core.config import LogConfig, Settings
from exapi.core.constants import REDACTED


@dataclass
class _LoggingState:
    """What setup_logging installed: the sinks and the keys to redact."""

    configured: bool = False
    sensitive_fields: frozenset[str] = field(
        default_factory=lambda: frozenset(LogConfig().sensitive_fields)
    )


_state = _LoggingState()

TRACE_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 200

# Fields shown first, in this order, by the console formatter
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "trace_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
)


def _escape(value: object) -> str:
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_priority_field(name: str, value: object) -> str:
    """Format a priority field for display.

    Args:
        name: The field name.
        value: The field value.

    Returns:
        str: Escaped display value.
    """
    if name == "trace_id" and len(str(value)) > TRACE_ID_DISPLAY_LENGTH:
        value = str(value)[:TRACE_ID_DISPLAY_LENGTH]
    elif name == "duration_ms":
        value = f"{value}ms"
    return _escape(value)


def _format_extra_field(key: str, value: object) -> str:
    """Format an extra field as ``key=value``, redacting sensitive keys."""
    str_value = str(value)
    if key in _state.sensitive_fields:
        str_value = REDACTED
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def _format_context_fields(extra: dict[str, Any]) -> list[str]:
    """Format all context fields from extra data.

    Args:
        extra: Extra fields from the log record.

    Returns:
        list[str]: List of formatted context parts.
    """
    context_parts = [
        f"<yellow>{_format_priority_field(name, extra[name])}</yellow>"
        for name in PRIORITY_FIELDS
        if extra.get(name) is not None
    ]
    context_parts.extend(
        f"<dim>{_format_extra_field(key, value)}</dim>"
        for key, value in extra.items()
        if key not in PRIORITY_FIELDS
        and not key.startswith("_")
        and value is not None
    )
    return context_parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format log record for console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Loguru format template for this record.
    """
    parts = [
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>",
        "<level>{level: <8}</level>",
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>",
    ]

    context_parts = _format_context_fields(record.get("extra", {}))
    if context_parts:
        parts.append(" ".join(f"[{part}]" for part in context_parts))

    parts.append(_escape(record.get("message", "")))

    line = " | ".join(parts) + "\n"
    if record.get("exception"):
        line += "{exception}\n"
    return line


def _format_traceback(exc: Any) -> str | None:  # noqa: ANN401
    if exc.type is None:
        return None
    return "".join(traceback.format_exception(exc.type, exc.value, exc.traceback))


def serialize_for_json(record: dict[str, Any]) -> str:
    """Render a record as one JSON line.

    The line carries the base record fields, every public bound field and,
    when an exception is attached, its type, value and formatted traceback.
    """
    public_extra = {
        key: value
        for key, value in record.get("extra", {}).items()
        if not key.startswith("_")
    }
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        **public_extra,
    }

    exc = record.get("exception")
    if exc:
        entry["exception"] = {
            "type": getattr(exc.type, "__name__", None),
            "value": None if exc.value is None else str(exc.value),
            "traceback": _format_traceback(exc),
        }

    return json.dumps(entry, default=str, ensure_ascii=False) + "\n"


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = inspect.currentframe(), 0
        while frame and (
            depth == 0 or frame.f_code.co_filename == logging.__file__
        ):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _json_sink(message: object) -> None:
    """Sink that writes the JSON rendering of each record to stdout."""
    record = cast("Any", message).record
    sys.stdout.write(serialize_for_json(record))
    sys.stdout.flush()


def setup_logging(settings: Settings) -> None:
    """Configure Loguru and route standard logging through it.

    Console colour stays off unless ``log_config.colorize`` is set, so the
    output is safe for log collectors by default.

    Args:
        settings: Application settings containing log configuration.

    Note:
        This function ensures it's only called once using module state.
    """
    if _state.configured:
        return

    log_config = settings.log_config
    formatter_type = log_config.log_formatter_type or "console"
    _state.sensitive_fields = frozenset(log_config.sensitive_fields)

    logger.remove()
    if formatter_type == "json":
        logger.add(
            _json_sink,
            level=log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )
    else:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=log_config.log_level,
            enqueue=True,
            colorize=log_config.colorize,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    # The access middleware already logs every request
    logging.getLogger("uvicorn.access").disabled = True

    logger.info(
        "Logging configured with {} formatter at {}",
        formatter_type,
        log_config.log_level,
    )

    _state.configured = True
