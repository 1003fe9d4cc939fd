"""Exceptions raised by the telemetry plugin."""

from __future__ import annotations

from typing import Any


class TelemetryConfigurationError(ValueError):
    """Base class for invalid plugin configuration."""


class InvalidOptionsError(TelemetryConfigurationError):
    """Options passed to `attach` or per request are not a recognized shape."""

    def __init__(self, value: Any):
        """Create an error capturing the offending options value."""
        self.value = value
        super().__init__(
            "Invalid telemetry options. Valid options must be a boolean or a "
            "mapping/list of pairs containing `adapter` and/or `pipeline` "
            f"boolean keys and an optional `metadata` mapping.\n\nGot: {value!r}"
        )


class UnknownEventError(TelemetryConfigurationError):
    """A subscriber asked for event names that are never emitted."""

    def __init__(self, events: list[Any]):
        """Create an error listing the unknown event names."""
        self.events = events
        super().__init__(f"cannot attach telemetry logger to unknown events: {events!r}")


class HandlerAlreadyExistsError(RuntimeError):
    """A handler with the same id is already attached to the bus."""

    def __init__(self, handler_id: str):
        """Create an error naming the duplicate handler id."""
        self.handler_id = handler_id
        super().__init__(f"handler {handler_id!r} already exists")
