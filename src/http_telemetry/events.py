"""Event names and the immutable event record.

Names follow `http.request.<phase>.<kind>` where phase is `pipeline` or
`adapter` and kind is `start`, `stop` or `error`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Phase = Literal["pipeline", "adapter"]
EventKind = Literal["start", "stop", "error"]
EventFilter = Literal["all", "pipeline", "adapter"]

EVENT_PREFIX = "http.request"

PHASES: tuple[Phase, ...] = ("pipeline", "adapter")
EVENT_KINDS: tuple[EventKind, ...] = ("start", "stop", "error")


def event_name(phase: Phase, kind: EventKind) -> str:
    """Return the bus name for a phase/kind pair."""
    return f"{EVENT_PREFIX}.{phase}.{kind}"


ADAPTER_EVENTS: tuple[str, ...] = tuple(event_name("adapter", kind) for kind in EVENT_KINDS)
PIPELINE_EVENTS: tuple[str, ...] = tuple(event_name("pipeline", kind) for kind in EVENT_KINDS)
ALL_EVENTS: tuple[str, ...] = ADAPTER_EVENTS + PIPELINE_EVENTS


def events(kind: EventFilter = "all") -> list[str]:
    """Return the event names emitted by the plugin, optionally for one phase."""
    if kind == "all":
        return list(ALL_EVENTS)
    if kind == "pipeline":
        return list(PIPELINE_EVENTS)
    if kind == "adapter":
        return list(ADAPTER_EVENTS)
    raise ValueError(f"kind must be one of 'all', 'pipeline', 'adapter'. Got: {kind!r}")


def parse_event_name(name: str) -> tuple[Phase, EventKind]:
    """Split a known event name into `(phase, kind)`."""
    if name not in ALL_EVENTS:
        raise ValueError(f"not a telemetry event name: {name!r}")
    _, _, phase, kind = name.split(".")
    return phase, kind  # type: ignore[return-value]


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class TelemetryEvent(BaseModel):
    """An emitted event captured as a value (for subscribers that keep events)."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    measurements: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=utc_now)

    @property
    def phase(self) -> Phase:
        return parse_event_name(self.name)[0]

    @property
    def kind(self) -> EventKind:
        return parse_event_name(self.name)[1]
