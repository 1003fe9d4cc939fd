"""Telemetry record models.

Records are designed to be:
- Durable and append-only (sink decides storage).
- Easy to link across one request via the correlation identifier.
- Safe by default (store summaries + selected fields, sensitive headers redacted).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


RecordKind = Literal["start", "stop", "error"]
RecordPhase = Literal["pipeline", "adapter"]


class TelemetryRecord(BaseModel):
    """A durable, structured record derived from one telemetry event."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    # Full event name (e.g., "http.request.adapter.stop").
    event_name: str
    phase: RecordPhase
    kind: RecordKind

    # Links the start/stop/error records of one request.
    correlation_id: str

    method: str
    url: str
    status: int | None = None
    duration_ns: int | None = None
    error: str | None = None

    # Timing fields.
    occurred_at: datetime
    logged_at: datetime = Field(default_factory=utc_now)

    # Headers (redacted) and user metadata.
    summary: dict[str, Any] = Field(default_factory=dict)
