"""Telemetry sinks (storage backends)."""

from __future__ import annotations

import json
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import duckdb

from .models import TelemetryRecord


class TelemetrySink(Protocol):
    """A synchronous sink for telemetry records.

    Sinks are synchronous because the recorder isolates blocking I/O in a
    background worker (thread) to keep the event loop unblocked.
    """

    def write(self, record: TelemetryRecord) -> None:
        """Persist a single record."""

    def close(self) -> None:
        """Close any underlying resources."""


class InMemoryTelemetrySink:
    """Keeps records in memory, grouped by request invocation.

    Useful in tests and when debugging locally: `by_correlation_id` returns
    the lifecycle of one request in the order its events were emitted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[TelemetryRecord] = []
        self._invocations: dict[str, list[TelemetryRecord]] = {}

    def write(self, record: TelemetryRecord) -> None:
        with self._lock:
            self._records.append(record)
            self._invocations.setdefault(record.correlation_id, []).append(record)

    def close(self) -> None:
        pass

    def snapshot(self) -> Sequence[TelemetryRecord]:
        """All records, in write order."""
        with self._lock:
            return list(self._records)

    def correlation_ids(self) -> list[str]:
        """Correlation ids of recorded invocations, oldest first."""
        with self._lock:
            return list(self._invocations)

    def by_correlation_id(self, correlation_id: str) -> Sequence[TelemetryRecord]:
        """Records of one invocation; empty if the id was never seen."""
        with self._lock:
            return list(self._invocations.get(correlation_id, ()))


@dataclass(frozen=True)
class DuckDBOptions:
    path: Path
    table: str = "http_telemetry_records"


class DuckDBTelemetrySink:
    """DuckDB sink for durable local persistence of request telemetry."""

    def __init__(self, *, path: str | Path, table: str = "http_telemetry_records") -> None:
        """Create (or open) a DuckDB-backed sink at the given path."""
        self._opts = DuckDBOptions(path=Path(path), table=table)
        self._lock = threading.Lock()
        self._conn = duckdb.connect(str(self._opts.path))
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create the backing table if it does not exist yet."""
        create_sql = f"""
        create table if not exists {self._opts.table} (
          logged_at timestamptz not null,
          occurred_at timestamptz not null,
          event_name varchar not null,
          phase varchar not null,
          kind varchar not null,
          correlation_id varchar not null,
          method varchar not null,
          url varchar not null,
          status integer,
          duration_ns bigint,
          error varchar,
          summary_json varchar not null
        )
        """
        with self._lock:
            self._conn.execute(create_sql)

    def write(self, record: TelemetryRecord) -> None:
        """Insert a single record into DuckDB (summary stored as stable JSON)."""
        summary_json = json.dumps(record.summary, separators=(",", ":"), sort_keys=True, default=str)
        insert_sql = f"""
        insert into {self._opts.table}
        (logged_at, occurred_at, event_name, phase, kind, correlation_id, method, url,
         status, duration_ns, error, summary_json)
        values (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        with self._lock:
            self._conn.execute(
                insert_sql,
                [
                    record.logged_at,
                    record.occurred_at,
                    record.event_name,
                    record.phase,
                    record.kind,
                    record.correlation_id,
                    record.method,
                    record.url,
                    record.status,
                    record.duration_ns,
                    record.error,
                    summary_json,
                ],
            )

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        with self._lock:
            self._conn.close()
