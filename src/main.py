"""Demo entrypoint wiring the client, telemetry plugin and subscribers together.

This module contains a small, end-to-end "smoke test" that:

- Loads configuration from environment.
- Creates a bus, attaches the default logger and (optionally) a DuckDB recorder.
- Issues one request with telemetry attached.

It is **not** intended as production wiring; it is a convenient manual
integration harness.
"""

from __future__ import annotations

import asyncio
import logging
import os

from config import load_config
from http_pipeline import HttpClient
from http_telemetry import TelemetryBus, attach, attach_default_logger
from observability import DuckDBTelemetrySink, TelemetryRecorder

logger = logging.getLogger(__name__)


async def run_demo() -> None:
    """Issue a single instrumented request (best-effort)."""
    cfg = load_config().telemetry
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s [%(levelname)s] %(name)s %(message)s")

    bus = TelemetryBus()
    if cfg.log_events != "none":
        attach_default_logger(bus, cfg.log_events)

    recorder: TelemetryRecorder | None = None
    if cfg.db_path:
        recorder = TelemetryRecorder(sink=DuckDBTelemetrySink(path=cfg.db_path))
        recorder.attach(bus)

    client = attach(HttpClient(), cfg.attach_options, bus=bus)
    url = os.getenv("DEMO_URL", "https://example.org")
    try:
        response = await client.get(url)
        logger.info("demo request finished with status %s", response.status)
    except Exception:  # noqa: BLE001 - already reported by the error event
        logger.debug("demo request failed", exc_info=True)
    finally:
        if recorder is not None:
            await recorder.aclose()


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
