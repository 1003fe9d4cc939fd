"""Client plugin that publishes request lifecycle events.

`attach` installs seven steps on an `HttpClient`:

- `telemetry_setup` runs first and resolves the effective settings once per
  invocation (attach-time settings merged with the `telemetry` option).
- Pipeline events wrap every other step: start is prepended to the request
  steps, stop/error are appended to the response/error steps.
- Adapter events wrap only the network call: start is appended to the
  request steps, stop/error are prepended to the response/error steps.

Usage:

    bus = TelemetryBus()
    client = attach(HttpClient(), bus=bus)

    await client.get("https://example.org")                     # all events
    await client.get("https://example.org", telemetry=False)    # no events
    await client.get("https://example.org", telemetry={"pipeline": False})
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field

from http_pipeline import HttpClient, HttpRequest, HttpResponse

from .bus import TelemetryBus
from .errors import InvalidOptionsError
from .events import Phase, event_name
from .options import DEFAULT_SETTINGS, NO_EMIT_SETTINGS, Settings, TelemetryOptions, merge_settings, normalize_options

logger = logging.getLogger(__name__)

OPTION_NAME = "telemetry"

# Private storage keys: attach-time settings (client) and invocation context (request).
SETTINGS_KEY = "telemetry_settings"
CONTEXT_KEY = "telemetry"


@dataclass
class InvocationContext:
    """Per-invocation telemetry state kept in the request's private storage."""

    correlation_id: str
    settings: Settings
    # Phase -> `time.monotonic_ns()` at the phase's start event.
    started_at: dict[str, int] = field(default_factory=dict)


def attach(client: HttpClient, options: TelemetryOptions = True, *, bus: TelemetryBus) -> HttpClient:
    """Install telemetry steps on `client`, publishing to `bus`.

    Options (also accepted per request under the `telemetry` option):
    - `False`: do not emit events
    - `{"pipeline": False}`: do not emit pipeline events
    - `{"adapter": False}`: do not emit adapter events
    - `{"metadata": {...}}`: passed through with every emitted event

    Raises:
    - `InvalidOptionsError` if `options` is not a recognized shape
    """
    initial = merge_settings(DEFAULT_SETTINGS, normalize_options(options))
    hooks = _TelemetrySteps(bus)

    return (
        client.register_options(OPTION_NAME)
        .put_private(SETTINGS_KEY, initial)
        .prepend_request_steps(pipeline_start=hooks.pipeline_start)
        .append_response_steps(pipeline_stop=hooks.pipeline_stop)
        .append_error_steps(pipeline_error=hooks.pipeline_error)
        .append_request_steps(adapter_start=hooks.adapter_start)
        .prepend_response_steps(adapter_stop=hooks.adapter_stop)
        .prepend_error_steps(adapter_error=hooks.adapter_error)
        # Prepended last so it runs before every other request step.
        .prepend_request_steps(telemetry_setup=telemetry_setup)
    )


def resolve_settings(request: HttpRequest) -> Settings:
    """Return the effective settings for a request.

    Raises:
    - `InvalidOptionsError` if the per-request `telemetry` option is invalid
    """
    initial: Settings = request.get_private(SETTINGS_KEY, DEFAULT_SETTINGS)
    override = normalize_options(request.options.get(OPTION_NAME, {}))
    return merge_settings(initial, override)


def telemetry_setup(request: HttpRequest) -> HttpRequest:
    """Create the invocation context for this request."""
    try:
        settings = resolve_settings(request)
    except InvalidOptionsError as exc:
        logger.warning("%s\nEvents will not be emitted.", exc)
        settings = NO_EMIT_SETTINGS

    context = InvocationContext(correlation_id=uuid.uuid4().hex, settings=settings)
    return request.put_private(CONTEXT_KEY, context)


def emit_start(request: HttpRequest, phase: Phase, bus: TelemetryBus) -> HttpRequest:
    context = _context_if_enabled(request, phase)
    if context is None:
        return request

    bus.execute(
        event_name(phase, "start"),
        {"time": time.time_ns()},
        {
            "correlation_id": context.correlation_id,
            "url": request.url,
            "method": request.method,
            "headers": dict(request.headers),
            "metadata": dict(context.settings.metadata),
        },
    )
    context.started_at[phase] = time.monotonic_ns()
    return request


def emit_stop(
    request: HttpRequest,
    response: HttpResponse,
    phase: Phase,
    bus: TelemetryBus,
) -> tuple[HttpRequest, HttpResponse]:
    context = _context_if_enabled(request, phase)
    if context is not None:
        bus.execute(
            event_name(phase, "stop"),
            {"duration": _duration(context, phase)},
            {
                "correlation_id": context.correlation_id,
                "url": request.url,
                "method": request.method,
                "status": response.status,
                "resp_headers": dict(response.headers),
                "metadata": dict(context.settings.metadata),
            },
        )
    return request, response


def emit_error(
    request: HttpRequest,
    error: Exception,
    phase: Phase,
    bus: TelemetryBus,
) -> tuple[HttpRequest, Exception]:
    context = _context_if_enabled(request, phase)
    if context is not None:
        bus.execute(
            event_name(phase, "error"),
            {"duration": _duration(context, phase)},
            {
                "correlation_id": context.correlation_id,
                "url": request.url,
                "method": request.method,
                "headers": dict(request.headers),
                "error": error,
                "metadata": dict(context.settings.metadata),
            },
        )
    return request, error


class _TelemetrySteps:
    """Step callables bound to one bus."""

    def __init__(self, bus: TelemetryBus) -> None:
        self._bus = bus

    def pipeline_start(self, request: HttpRequest) -> HttpRequest:
        return emit_start(request, "pipeline", self._bus)

    def adapter_start(self, request: HttpRequest) -> HttpRequest:
        return emit_start(request, "adapter", self._bus)

    def pipeline_stop(self, request: HttpRequest, response: HttpResponse) -> tuple[HttpRequest, HttpResponse]:
        return emit_stop(request, response, "pipeline", self._bus)

    def adapter_stop(self, request: HttpRequest, response: HttpResponse) -> tuple[HttpRequest, HttpResponse]:
        return emit_stop(request, response, "adapter", self._bus)

    def pipeline_error(self, request: HttpRequest, error: Exception) -> tuple[HttpRequest, Exception]:
        return emit_error(request, error, "pipeline", self._bus)

    def adapter_error(self, request: HttpRequest, error: Exception) -> tuple[HttpRequest, Exception]:
        return emit_error(request, error, "adapter", self._bus)


def _context_if_enabled(request: HttpRequest, phase: Phase) -> InvocationContext | None:
    """Return the invocation context if events for `phase` should be emitted."""
    context = request.get_private(CONTEXT_KEY)
    if not isinstance(context, InvocationContext) or not context.settings.emits(phase):
        return None
    return context


def _duration(context: InvocationContext, phase: Phase) -> int | None:
    """Nanoseconds since the phase's start event, or None if none was recorded."""
    started_at = context.started_at.get(phase)
    if started_at is None:
        return None
    return time.monotonic_ns() - started_at
