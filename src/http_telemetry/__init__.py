"""Telemetry events for the `http_pipeline` client.

This package provides:
- `attach`: install steps that publish start/stop/error events for the
  pipeline and adapter phases of every request.
- `events`: the names of those events.
- `attach_default_logger`: a subscriber that logs each event.
- `TelemetryBus`: the in-process bus events are published to.
"""

from .bus import TelemetryBus
from .errors import HandlerAlreadyExistsError, InvalidOptionsError, TelemetryConfigurationError, UnknownEventError
from .events import ALL_EVENTS, TelemetryEvent, events
from .logger import attach_default_logger, detach_default_logger
from .options import DEFAULT_SETTINGS, NO_EMIT_SETTINGS, Settings, merge_settings, normalize_options
from .plugin import InvocationContext, attach, resolve_settings

__all__ = [
    "ALL_EVENTS",
    "DEFAULT_SETTINGS",
    "HandlerAlreadyExistsError",
    "InvalidOptionsError",
    "InvocationContext",
    "NO_EMIT_SETTINGS",
    "Settings",
    "TelemetryBus",
    "TelemetryConfigurationError",
    "TelemetryEvent",
    "UnknownEventError",
    "attach",
    "attach_default_logger",
    "detach_default_logger",
    "events",
    "merge_settings",
    "normalize_options",
    "resolve_settings",
]
