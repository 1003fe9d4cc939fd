from __future__ import annotations

from typing import Any

import pytest


@pytest.fixture(autouse=True)
def _no_threads_in_unit_tests(monkeypatch: pytest.MonkeyPatch):
    """Run `asyncio.to_thread` inline for unit tests.

    The client runs adapters via `asyncio.to_thread`. In unit tests, this can
    create threadpool workers that keep the Python process alive longer than
    expected under some runtimes.
    """

    async def _to_thread(func, /, *args, **kwargs):  # noqa: ANN001, D401
        return func(*args, **kwargs)

    monkeypatch.setattr("http_pipeline.client.asyncio.to_thread", _to_thread)
    yield


class EventCollector:
    """Bus handler that keeps every event it receives, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any], dict[str, Any]]] = []

    def __call__(self, name: str, measurements: dict[str, Any], metadata: dict[str, Any], config: Any) -> None:
        self.events.append((name, measurements, metadata))

    @property
    def names(self) -> list[str]:
        return [name for name, _, _ in self.events]


@pytest.fixture
def bus():
    from http_telemetry import TelemetryBus

    return TelemetryBus()


@pytest.fixture
def collector(bus) -> EventCollector:  # noqa: ANN001
    from http_telemetry import events

    collected = EventCollector()
    bus.attach_many("test-collector", events(), collected)
    return collected
