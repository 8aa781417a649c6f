"""Shared fakes and fixtures for pipeline tests."""

import threading
import time
from collections.abc import Callable

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from loggen.generators.base import Generator
from loggen.senders.base import Sender, SendError


class SequenceGenerator(Generator):
    """Produces b"batch-0000", b"batch-0001", ... and remembers what it produced."""

    def __init__(
        self,
        rate: int = 5,
        fail_when: Callable[[int], bool] | None = None,
        make_batch: Callable[[int], bytes] | None = None,
    ):
        self._rate = rate
        self._fail_when = fail_when
        self._make_batch = make_batch or (lambda n: b"batch-%04d" % n)
        self._lock = threading.Lock()
        self.calls = 0
        self.produced: list[bytes] = []

    @property
    def rate(self) -> int:
        return self._rate

    def generate(self) -> bytes:
        with self._lock:
            n = self.calls
            self.calls += 1
        if self._fail_when is not None and self._fail_when(n):
            raise RuntimeError(f"generation {n} failed")
        batch = self._make_batch(n)
        with self._lock:
            self.produced.append(batch)
        return batch


class RecordingSender(Sender):
    """Records every batch with the name of the delivery thread that sent it."""

    def __init__(
        self,
        delay: float = 0.0,
        fail_when: Callable[[int], bool] | None = None,
        gate: threading.Event | None = None,
    ):
        self._delay = delay
        self._fail_when = fail_when
        self._gate = gate
        self._lock = threading.Lock()
        self.started = 0
        self.completed = 0
        self.failed = 0
        self.received: list[tuple[str, bytes]] = []

    def send(self, batch: bytes) -> None:
        with self._lock:
            n = self.started
            self.started += 1
            self.received.append((threading.current_thread().name, batch))
        try:
            if self._gate is not None:
                self._gate.wait()
            if self._delay:
                time.sleep(self._delay)
            if self._fail_when is not None and self._fail_when(n):
                with self._lock:
                    self.failed += 1
                raise SendError(f"send {n} failed", status_code=503)
        finally:
            with self._lock:
                self.completed += 1

    def in_dispatch_order(self) -> list[bytes]:
        """Received batches ordered by delivery thread number (loggen-send-N)."""
        with self._lock:
            items = list(self.received)
        items.sort(key=lambda item: int(item[0].rsplit("-", 1)[1]))
        return [batch for _, batch in items]


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def run_in_background(pipeline) -> tuple[threading.Event, threading.Thread]:
    """Start pipeline.start(cancel) on a thread; returns (cancel, thread)."""
    cancel = threading.Event()
    thread = threading.Thread(target=pipeline.start, args=(cancel,), daemon=True)
    thread.start()
    return cancel, thread


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter: InMemorySpanExporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider.get_tracer("loggen.tests")
    provider.shutdown()


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    return InMemoryMetricReader()


@pytest.fixture
def meter(metric_reader: InMemoryMetricReader):
    provider = MeterProvider(metric_readers=[metric_reader])
    yield provider.get_meter("loggen.tests")
    provider.shutdown()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep real settings and env overrides out of the tests."""
    monkeypatch.setenv("LOGGEN_HOME", str(tmp_path / "loggen-home"))
    for name in ("LOGGEN_URL", "LOGGEN_API_KEY", "LOGGEN_API_SECRET", "LOGGEN_RATE"):
        monkeypatch.delenv(name, raising=False)
