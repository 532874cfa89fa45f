"""
Downstream logs consumer contract and an in-memory sink.

A consumer receives one completed ``LogsData`` per call and signals
failure by raising.  The connector lets that exception propagate to its
own caller untouched.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from opentelemetry.proto.logs.v1.logs_pb2 import LogsData


@runtime_checkable
class LogsConsumer(Protocol):
    """Accepts diagnostic log batches."""

    def consume_logs(self, logs: LogsData) -> None:
        ...


class LogsSink:
    """Consumer that keeps every batch it receives (useful in tests)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._logs: list[LogsData] = []

    def consume_logs(self, logs: LogsData) -> None:
        with self._lock:
            self._logs.append(logs)

    def all_logs(self) -> list[LogsData]:
        with self._lock:
            return list(self._logs)

    def log_record_count(self) -> int:
        """Total number of log records across all received batches."""
        with self._lock:
            return sum(
                len(sl.log_records)
                for logs in self._logs
                for rl in logs.resource_logs
                for sl in rl.scope_logs
            )

    def reset(self) -> None:
        with self._lock:
            self._logs.clear()
