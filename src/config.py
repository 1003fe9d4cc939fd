"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating values and providing actionable error messages.
"""

import os
from typing import Any, Literal

import dotenv
from pydantic import BaseModel, Field, field_validator

LogEvents = Literal["all", "pipeline", "adapter", "none"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _get_env_str(name: str, default: str | None) -> str | None:
    """Read an optional string env var (blank counts as unset)."""
    value = os.getenv(name, "").strip()
    return value or default


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


class TelemetryConfig(BaseModel):
    """Configuration for request telemetry."""

    enabled: bool = Field(default=True, description="Emit telemetry events by default")
    pipeline: bool = Field(default=True, description="Emit pipeline events")
    adapter: bool = Field(default=True, description="Emit adapter events")
    log_events: LogEvents = Field(default="all", description="Events logged by the default logger")
    log_level: str = Field(default="INFO", description="Root logging level")
    service_name: str | None = Field(default=None, description="Added to event metadata as `service`")
    db_path: str | None = Field(default=None, description="DuckDB file for recorded telemetry")

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Validate and upper-case the logging level name."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"HTTP_TELEMETRY_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}. Got: {v!r}")
        return level

    @property
    def attach_options(self) -> bool | dict[str, Any]:
        """Options to pass to `http_telemetry.attach`."""
        if not self.enabled:
            return False
        options: dict[str, Any] = {"pipeline": self.pipeline, "adapter": self.adapter}
        if self.service_name:
            options["metadata"] = {"service": self.service_name}
        return options


class Config(BaseModel):
    """Top-level application configuration."""

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig, description="Telemetry configuration")


def load_config() -> Config:
    """Load application configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages for malformed values.
    """
    dotenv.load_dotenv()

    log_events = (_get_env_str("HTTP_TELEMETRY_LOG_EVENTS", "all") or "all").lower()
    if log_events not in {"all", "pipeline", "adapter", "none"}:
        raise ValueError(f"HTTP_TELEMETRY_LOG_EVENTS must be all, pipeline, adapter or none. Got: {log_events!r}")

    telemetry = TelemetryConfig(
        enabled=_get_env_bool("HTTP_TELEMETRY_ENABLED", True),
        pipeline=_get_env_bool("HTTP_TELEMETRY_PIPELINE", True),
        adapter=_get_env_bool("HTTP_TELEMETRY_ADAPTER", True),
        log_events=log_events,  # type: ignore[arg-type]
        log_level=_get_env_str("HTTP_TELEMETRY_LOG_LEVEL", "INFO") or "INFO",
        service_name=_get_env_str("HTTP_TELEMETRY_SERVICE_NAME", None),
        db_path=_get_env_str("HTTP_TELEMETRY_DB_PATH", None),
    )
    return Config(telemetry=telemetry)
