"""
Outcome counters for the sending pipeline.

PipelineMetrics is an explicitly owned registry: each pipeline gets one at
construction. Counts are kept locally under a lock so they can be read back
(snapshot) and are mirrored to OpenTelemetry instruments for export.
"""

import threading
from dataclasses import dataclass

from opentelemetry import metrics
from opentelemetry.metrics import Meter

LINES_SENT = "loggen.lines.sent"
BYTES_SENT = "loggen.bytes.sent"
SEND_ERRORS = "loggen.errors"
SEND_DURATION = "loggen.send.duration"


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time copy of the counters."""

    lines: int = 0
    bytes: int = 0
    errors: int = 0
    sends: int = 0


class PipelineMetrics:
    """Thread-safe lines/bytes/errors counters plus a send-duration histogram."""

    def __init__(self, meter: Meter | None = None):
        meter = meter or metrics.get_meter("loggen.pipeline")
        self._lines_counter = meter.create_counter(
            LINES_SENT,
            description="Generated lines handed to the sender",
            unit="1",
        )
        self._bytes_counter = meter.create_counter(
            BYTES_SENT,
            description="Batch bytes handed to the sender",
            unit="By",
        )
        self._errors_counter = meter.create_counter(
            SEND_ERRORS,
            description="Failed batch deliveries",
            unit="1",
        )
        self._send_duration = meter.create_histogram(
            SEND_DURATION,
            description="Batch delivery latency",
            unit="s",
        )
        self._lock = threading.Lock()
        self._lines = 0
        self._bytes = 0
        self._errors = 0
        self._sends = 0

    def record_attempt(self, lines: int, size: int) -> None:
        """Count one delivery attempt; called before the send is made."""
        with self._lock:
            self._lines += lines
            self._bytes += size
            self._sends += 1
        self._lines_counter.add(lines)
        self._bytes_counter.add(size)

    def record_error(self) -> None:
        with self._lock:
            self._errors += 1
        self._errors_counter.add(1)

    def record_send_duration(self, seconds: float, success: bool) -> None:
        self._send_duration.record(seconds, {"outcome": "success" if success else "error"})

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                lines=self._lines,
                bytes=self._bytes,
                errors=self._errors,
                sends=self._sends,
            )
