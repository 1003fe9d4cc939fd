from __future__ import annotations

import logging
import time
from typing import Any

import pytest
import requests

from http_pipeline import HttpClient, HttpRequest, HttpResponse
from http_telemetry import TelemetryBus, attach, events

DEFAULT_URL = "https://example.org"
DEFAULT_HEADERS = {"content-type": "application/json"}


def _mock_adapter(status: int = 200, headers: dict[str, str] | None = None, delay_s: float = 0.0):
    def adapter(request: HttpRequest) -> HttpResponse:
        if delay_s:
            time.sleep(delay_s)
        return HttpResponse(status=status, headers=headers if headers is not None else DEFAULT_HEADERS, body="")

    return adapter


def _failing_adapter(exc: Exception, delay_s: float = 0.0):
    def adapter(request: HttpRequest) -> HttpResponse:
        if delay_s:
            time.sleep(delay_s)
        raise exc

    return adapter


def _client(bus: TelemetryBus, options: Any = True, **adapter_kwargs: Any) -> HttpClient:
    return attach(HttpClient(adapter=_mock_adapter(**adapter_kwargs)), options, bus=bus)


@pytest.mark.asyncio
async def test_emitted_at_the_start_and_end_of_a_request(bus: TelemetryBus, collector) -> None:
    await _client(bus).get(DEFAULT_URL)

    assert collector.names == [
        "http.request.pipeline.start",
        "http.request.adapter.start",
        "http.request.adapter.stop",
        "http.request.pipeline.stop",
    ]
    correlation_ids = {metadata["correlation_id"] for _, _, metadata in collector.events}
    assert len(correlation_ids) == 1


@pytest.mark.asyncio
async def test_each_request_gets_its_own_correlation_id(bus: TelemetryBus, collector) -> None:
    client = _client(bus)
    await client.get(DEFAULT_URL)
    await client.get(DEFAULT_URL)

    correlation_ids = [metadata["correlation_id"] for _, _, metadata in collector.events]
    assert len(set(correlation_ids[:4])) == 1
    assert len(set(correlation_ids[4:])) == 1
    assert correlation_ids[0] != correlation_ids[4]


@pytest.mark.asyncio
async def test_can_be_excluded_with_attach_options(bus: TelemetryBus, collector) -> None:
    await _client(bus, False).get(DEFAULT_URL)
    assert collector.names == []

    await _client(bus, {"pipeline": False}).get(DEFAULT_URL)
    assert collector.names == ["http.request.adapter.start", "http.request.adapter.stop"]


@pytest.mark.asyncio
async def test_can_be_overridden_per_request(bus: TelemetryBus, collector) -> None:
    client = _client(bus)

    await client.get(DEFAULT_URL, telemetry=False)
    assert collector.names == []

    await client.get(DEFAULT_URL)
    assert len(collector.names) == 4

    collector.events.clear()
    await client.get(DEFAULT_URL, telemetry={"adapter": False})
    assert collector.names == ["http.request.pipeline.start", "http.request.pipeline.stop"]


@pytest.mark.asyncio
async def test_excluded_at_attach_can_be_overridden(bus: TelemetryBus, collector) -> None:
    await _client(bus, False).get(DEFAULT_URL, telemetry=[("adapter", True)])
    assert collector.names == ["http.request.adapter.start", "http.request.adapter.stop"]


@pytest.mark.asyncio
async def test_start_events_include_time_and_request_metadata(bus: TelemetryBus, collector) -> None:
    before = time.time_ns()
    await _client(bus, {"metadata": {"team": "search"}}).post(DEFAULT_URL, headers={"x-trace": "1"})

    starts = [(m, md) for name, m, md in collector.events if name.endswith(".start")]
    assert len(starts) == 2
    for measurements, metadata in starts:
        assert isinstance(measurements["time"], int)
        assert measurements["time"] >= before
        assert metadata["url"] == DEFAULT_URL
        assert metadata["method"] == "POST"
        assert metadata["headers"] == {"x-trace": "1"}
        assert metadata["metadata"] == {"team": "search"}


@pytest.mark.asyncio
async def test_stop_events_include_duration_status_and_response_headers(
    bus: TelemetryBus, collector
) -> None:
    resp_headers = {"some": "header"}
    await _client(bus, status=201, headers=resp_headers).post(DEFAULT_URL)

    stops = [(m, md) for name, m, md in collector.events if name.endswith(".stop")]
    assert len(stops) == 2
    for measurements, metadata in stops:
        assert isinstance(measurements["duration"], int)
        assert measurements["duration"] >= 0
        assert metadata["status"] == 201
        assert metadata["resp_headers"] == resp_headers
        assert metadata["method"] == "POST"
        assert metadata["url"] == DEFAULT_URL


@pytest.mark.asyncio
async def test_per_request_metadata_is_merged_into_events(bus: TelemetryBus, collector) -> None:
    client = _client(bus, {"metadata": {"a": 1}})
    await client.get(DEFAULT_URL, telemetry={"metadata": {"b": 2}})

    assert all(metadata["metadata"] == {"a": 1, "b": 2} for _, _, metadata in collector.events)


@pytest.mark.asyncio
async def test_durations_cover_the_time_between_start_and_stop(bus: TelemetryBus, collector) -> None:
    await _client(bus, delay_s=0.02).get(DEFAULT_URL)

    durations = {name: m["duration"] for name, m, _ in collector.events if name.endswith(".stop")}
    adapter = durations["http.request.adapter.stop"]
    pipeline = durations["http.request.pipeline.stop"]
    assert adapter >= 20_000_000
    assert pipeline >= adapter
    assert adapter < 5_000_000_000


@pytest.mark.asyncio
async def test_adapter_error_emits_error_events_and_propagates(bus: TelemetryBus, collector) -> None:
    error = requests.ConnectionError("connection refused")
    client = attach(HttpClient(adapter=_failing_adapter(error, delay_s=0.005)), bus=bus)

    with pytest.raises(requests.ConnectionError) as exc_info:
        await client.get(DEFAULT_URL)
    assert exc_info.value is error

    assert collector.names == [
        "http.request.pipeline.start",
        "http.request.adapter.start",
        "http.request.adapter.error",
        "http.request.pipeline.error",
    ]
    errors = [(m, md) for name, m, md in collector.events if name.endswith(".error")]
    for measurements, metadata in errors:
        assert measurements["duration"] is not None
        assert measurements["duration"] >= 5_000_000
        assert metadata["error"] is error
        assert metadata["headers"] == {}


@pytest.mark.asyncio
async def test_adapter_error_without_pipeline_events(bus: TelemetryBus, collector) -> None:
    client = attach(HttpClient(adapter=_failing_adapter(TimeoutError("slow"))), {"pipeline": False}, bus=bus)

    with pytest.raises(TimeoutError):
        await client.get(DEFAULT_URL)

    assert collector.names == ["http.request.adapter.start", "http.request.adapter.error"]


@pytest.mark.asyncio
async def test_invalid_per_request_options_log_once_and_emit_nothing(
    bus: TelemetryBus, collector, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="http_telemetry.plugin")
    client = _client(bus)

    response = await client.get(DEFAULT_URL, telemetry="sometimes")

    assert response.status == 200
    assert collector.names == []
    warnings = [r for r in caplog.records if r.name == "http_telemetry.plugin"]
    assert len(warnings) == 1
    assert warnings[0].levelno == logging.WARNING
    assert "'sometimes'" in warnings[0].getMessage()
    assert "Events will not be emitted." in warnings[0].getMessage()


@pytest.mark.asyncio
async def test_invalid_per_request_options_still_propagate_request_errors(
    bus: TelemetryBus, collector
) -> None:
    client = attach(HttpClient(adapter=_failing_adapter(RuntimeError("boom"))), bus=bus)

    with pytest.raises(RuntimeError, match="boom"):
        await client.get(DEFAULT_URL, telemetry=42)
    assert collector.names == []


@pytest.mark.asyncio
async def test_stop_without_recorded_start_reports_no_duration(bus: TelemetryBus, collector) -> None:
    client = _client(bus)
    # A step installed after attach that drops the recorded adapter start.
    client.append_request_steps(forget_start=_forget_adapter_start)

    await client.get(DEFAULT_URL)

    durations = {name: m["duration"] for name, m, _ in collector.events if name.endswith(".stop")}
    assert durations["http.request.adapter.stop"] is None
    assert durations["http.request.pipeline.stop"] is not None


def _forget_adapter_start(request: HttpRequest) -> HttpRequest:
    request.get_private("telemetry").started_at.pop("adapter", None)
    return request


@pytest.mark.asyncio
async def test_non_string_metadata_keys_per_request_log_and_emit_nothing(
    bus: TelemetryBus, collector, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="http_telemetry.plugin")
    client = _client(bus)

    response = await client.get(DEFAULT_URL, telemetry={"metadata": {1: "x"}})

    assert response.status == 200
    assert collector.names == []
    warnings = [r for r in caplog.records if r.name == "http_telemetry.plugin"]
    assert len(warnings) == 1
    assert "Events will not be emitted." in warnings[0].getMessage()


@pytest.mark.asyncio
async def test_subscriber_mutating_metadata_does_not_affect_later_events(bus: TelemetryBus) -> None:
    seen: list[dict[str, Any]] = []

    def meddling_handler(name: str, measurements: dict, metadata: dict, config: Any = None) -> None:
        seen.append(dict(metadata["metadata"]))
        metadata["metadata"]["touched"] = name

    bus.attach_many("meddler", events(), meddling_handler)
    client = _client(bus, {"metadata": {"a": 1}})

    await client.get(DEFAULT_URL)
    await client.get(DEFAULT_URL)

    assert len(seen) == 8
    assert all(metadata == {"a": 1} for metadata in seen)
