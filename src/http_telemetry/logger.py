"""Default subscriber that writes one log line per telemetry event.

A successful request looks like:

    INFO http_telemetry.logger HTTP:2864913713 - GET https://example.org (pipeline)
    INFO http_telemetry.logger HTTP:2864913713 - GET https://example.org (adapter)
    INFO http_telemetry.logger HTTP:2864913713 - 200 in 403ms (adapter)
    INFO http_telemetry.logger HTTP:2864913713 - 200 in 413ms (pipeline)

and a failed one:

    ERROR http_telemetry.logger HTTP:91450122 - ERROR in 2012ms (adapter)
    ConnectTimeout('timed out')

The correlation id is never logged; a short crc32 of it links the lines.
"""

from __future__ import annotations

import logging
import zlib
from collections.abc import Iterable
from typing import Any

from .bus import TelemetryBus
from .errors import UnknownEventError
from .events import ALL_EVENTS, events, parse_event_name

logger = logging.getLogger(__name__)

HANDLER_ID = "http-telemetry-default-logger"
LOG_TAG = "HTTP"


def attach_default_logger(bus: TelemetryBus, kind_or_events: str | Iterable[str] = "all") -> None:
    """Attach the logging handler to `bus`.

    `kind_or_events` is `"all"`, `"adapter"`, `"pipeline"`, a single event
    name or an explicit list of event names (e.g.
    `["http.request.pipeline.error"]`).

    Raises:
    - `UnknownEventError` if any requested event is never emitted
    - `HandlerAlreadyExistsError` if the logger is already attached
    """
    if isinstance(kind_or_events, str) and kind_or_events in ALL_EVENTS:
        selected = [kind_or_events]
    elif isinstance(kind_or_events, str):
        try:
            selected = events(kind_or_events)  # type: ignore[arg-type]
        except ValueError as exc:
            raise UnknownEventError([kind_or_events]) from exc
    else:
        selected = list(kind_or_events)
        unknown = [name for name in selected if name not in ALL_EVENTS]
        if unknown:
            raise UnknownEventError(unknown)

    bus.attach_many(HANDLER_ID, selected, handle_event)


def detach_default_logger(bus: TelemetryBus) -> bool:
    """Detach the logging handler; return False if it was not attached."""
    return bus.detach(HANDLER_ID)


def handle_event(name: str, measurements: dict[str, Any], metadata: dict[str, Any], config: Any = None) -> None:
    phase, kind = parse_event_name(name)
    prefix = _prefix(metadata["correlation_id"])

    if kind == "start":
        logger.info("%s%s %s (%s)", prefix, str(metadata["method"]).upper(), metadata["url"], phase)
    elif kind == "stop":
        logger.info("%s%s in %s (%s)", prefix, metadata["status"], format_duration(measurements.get("duration")), phase)
    else:
        logger.error(
            "%sERROR in %s (%s)\n%r",
            prefix,
            format_duration(measurements.get("duration")),
            phase,
            metadata["error"],
        )


def correlation_hash(correlation_id: str) -> int:
    """Short, deterministic, non-cryptographic hash of a correlation id."""
    return zlib.crc32(str(correlation_id).encode("utf-8"))


def format_duration(duration_ns: int | None) -> str:
    """Render a nanosecond duration as whole milliseconds."""
    if duration_ns is None:
        return "?ms"
    return f"{duration_ns // 1_000_000}ms"


def _prefix(correlation_id: str) -> str:
    return f"{LOG_TAG}:{correlation_hash(correlation_id)} - "
