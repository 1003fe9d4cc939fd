"""Persistence for request telemetry.

This package provides a bus subscriber that:
- Turns telemetry events into durable records linked by correlation id.
- Captures both "occurred at" and "logged at" timestamps.
- Persists records to a sink (DuckDB by default) without blocking the event loop.
"""

from .models import TelemetryRecord
from .recorder import TelemetryRecorder, build_record
from .sinks import DuckDBTelemetrySink, InMemoryTelemetrySink, TelemetrySink

__all__ = [
    "DuckDBTelemetrySink",
    "InMemoryTelemetrySink",
    "TelemetryRecord",
    "TelemetryRecorder",
    "TelemetrySink",
    "build_record",
]
