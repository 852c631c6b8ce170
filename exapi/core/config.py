"""Service settings loaded from the environment with Pydantic Settings.

Every value is typed and validated at load time. Nested groups are set with
the ``__`` delimiter, for example ``METRICS_CONFIG__ENABLED=true`` or
``PROFILING_CONFIG__PATH=/debug/pprof``. The metrics endpoint, the profiling
endpoints and the diagnostics agent are all off unless enabled here.

Lookup order: process environment, then a ``.env`` file in the working
directory, then the field defaults below.

Settings are read once at process start (see ``get_settings``) and nothing
in the library mutates them afterwards.
"""

import socket
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from exapi.core.constants import (
    DEFAULT_DIAGNOSTICS_ADDRESS,
    DEFAULT_METRICS_NAMESPACE,
)


class LogConfig(BaseModel):
    """Logging and access log configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    colorize: bool = Field(
        default=False,
        description="Colorize console output (suppressed by default)",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths whose access log lines are suppressed",
    )
    slow_request_threshold_ms: int = Field(
        default=3000,
        gt=0,
        description="Threshold for slow request warnings (milliseconds)",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class MetricsConfig(BaseModel):
    """Prometheus scrape endpoint configuration."""

    enabled: bool = Field(default=False, description="Expose the metrics endpoint")
    path: str = Field(default="/metrics", description="Metrics endpoint path")
    namespace: str = Field(
        default=DEFAULT_METRICS_NAMESPACE,
        description="Prefix for the request metric families",
    )

    @field_validator("path", mode="before")
    @classmethod
    def empty_path_to_default(cls, v: str | None) -> str:
        """Fall back to the default path when left empty."""
        return v or "/metrics"


class ProfilingConfig(BaseModel):
    """Profiling endpoint configuration."""

    enabled: bool = Field(default=False, description="Expose profiling endpoints")
    path: str | None = Field(
        default=None,
        description="Profiling prefix. Derived from the local IP if not specified.",
    )

    @field_validator("path", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v

    def resolve_path(self) -> str:
        """Return the configured prefix or the default host-specific one.

        Returns:
            str: Prefix such as ``/hostdebug/10.0.0.5/entry``.
        """
        if self.path:
            return self.path
        return f"/hostdebug/{local_ip()}/entry"


class DiagnosticsConfig(BaseModel):
    """Diagnostics agent configuration."""

    enabled: bool = Field(
        default=False, description="Start the diagnostics TCP agent"
    )
    address: str = Field(
        default=DEFAULT_DIAGNOSTICS_ADDRESS,
        description="host:port the agent listens on",
    )

    @field_validator("address", mode="before")
    @classmethod
    def empty_address_to_default(cls, v: str | None) -> str:
        """Fall back to the default address when left empty."""
        return v or DEFAULT_DIAGNOSTICS_ADDRESS

    @field_validator("address", mode="after")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate that the address has a numeric port."""
        _, sep, port = v.rpartition(":")
        if not sep or not port.isdigit():
            msg = "Diagnostics address must look like host:port"
            raise ValueError(msg)
        return v


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="ExAPI", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str | None = Field(default="/redoc", description="ReDoc URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )
    cors_enabled: bool = Field(default=True, description="Enable CORS middleware")

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    metrics_config: MetricsConfig = Field(
        default_factory=MetricsConfig, description="Metrics configuration"
    )
    profiling_config: ProfilingConfig = Field(
        default_factory=ProfilingConfig, description="Profiling configuration"
    )
    diagnostics_config: DiagnosticsConfig = Field(
        default_factory=DiagnosticsConfig, description="Diagnostics configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = (
                "console" if self.environment == "development" else "json"
            )

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def local_ip() -> str:
    """Best-effort primary IPv4 address of this host.

    Connecting a UDP socket sends no packets; it only makes the kernel pick
    the outbound interface.

    Returns:
        str: The address, or ``127.0.0.1`` when no route is available.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        return str(sock.getsockname()[0])
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()
