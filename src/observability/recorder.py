"""Telemetry subscriber that persists events without blocking the event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from http_telemetry import ALL_EVENTS, TelemetryBus, TelemetryEvent

from .models import TelemetryRecord, utc_now
from .sinks import TelemetrySink

HANDLER_ID = "http-telemetry-recorder"

SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie", "set-cookie", "x-api-key"})


def _redact_headers(headers: Any) -> dict[str, str]:
    """Copy headers, masking values of obviously sensitive ones."""
    if not isinstance(headers, dict):
        return {}
    return {
        str(k): "[REDACTED]" if str(k).lower() in SENSITIVE_HEADERS else str(v)
        for k, v in headers.items()
    }


def _extract_occurred_at(measurements: dict[str, Any], default: datetime) -> datetime:
    """Use the start event's wall-clock time when present; otherwise `default`."""
    ts = measurements.get("time")
    if isinstance(ts, int):
        seconds, nanos = divmod(ts, 1_000_000_000)
        return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(microseconds=nanos // 1_000)
    return default


def build_record(event: TelemetryEvent) -> TelemetryRecord:
    """Convert an emitted event into a storable record."""
    measurements, metadata = event.measurements, event.metadata

    summary: dict[str, Any] = {"metadata": dict(metadata.get("metadata") or {})}
    if "headers" in metadata:
        summary["headers"] = _redact_headers(metadata["headers"])
    if "resp_headers" in metadata:
        summary["resp_headers"] = _redact_headers(metadata["resp_headers"])

    error = metadata.get("error")
    return TelemetryRecord(
        event_name=event.name,
        phase=event.phase,
        kind=event.kind,
        correlation_id=str(metadata["correlation_id"]),
        method=str(metadata.get("method", "")),
        url=str(metadata.get("url", "")),
        status=metadata.get("status"),
        duration_ns=measurements.get("duration"),
        error=repr(error) if error is not None else None,
        occurred_at=_extract_occurred_at(measurements, event.received_at),
        logged_at=event.received_at,
        summary=summary,
    )


class TelemetryRecorder:
    """Queues records from bus events and writes them in a background task.

    Attach it from code running inside an event loop (the client is async);
    the writer task is created on the first event.
    """

    def __init__(self, *, sink: TelemetrySink, max_queue_size: int = 10000) -> None:
        """Create a recorder backed by a synchronous sink.

        Args:
            sink: Storage backend used by the background writer.
            max_queue_size: Bound for in-memory buffering; records are dropped
                when full so requests are never blocked.
        """
        self._sink = sink
        self._queue: asyncio.Queue[TelemetryRecord | None] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

        self._write_failures = 0
        self._first_failure_at: datetime | None = None
        self._last_failure_at: datetime | None = None

    def attach(self, bus: TelemetryBus, event_names: Iterable[str] = ALL_EVENTS) -> None:
        """Subscribe to `event_names` on `bus`."""
        bus.attach_many(HANDLER_ID, event_names, self.handle_event)

    def _ensure_started(self) -> None:
        """Start the background writer task if it hasn't been started yet."""
        if self._worker is not None:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run_worker(), name="telemetry-writer")

    def handle_event(self, name: str, measurements: dict[str, Any], metadata: dict[str, Any], config: Any = None) -> None:
        """Bus handler: enqueue a record for the event (non-blocking)."""
        if self._closed:
            return

        self._ensure_started()
        record = build_record(TelemetryEvent(name=name, measurements=measurements, metadata=metadata))

        # In overload conditions we prefer dropping records over blocking requests.
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            self._note_failure()

    async def aclose(self) -> None:
        """Flush and close the recorder.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        if self._worker is not None:
            await self._queue.put(None)
            await self._worker
        await asyncio.to_thread(self._sink.close)

    async def _run_worker(self) -> None:
        """Background loop that drains the queue and writes to the sink."""
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return
                await asyncio.to_thread(self._sink.write, item)
            except Exception:  # noqa: BLE001 - telemetry must not crash requests
                self._note_failure()
            finally:
                self._queue.task_done()

    def _note_failure(self) -> None:
        now = utc_now()
        self._write_failures += 1
        self._first_failure_at = self._first_failure_at or now
        self._last_failure_at = now

    def degraded_status(self) -> dict[str, Any]:
        """Return a minimal degraded-status snapshot."""
        return {
            "write_failures": self._write_failures,
            "first_failure_at": self._first_failure_at,
            "last_failure_at": self._last_failure_at,
        }
