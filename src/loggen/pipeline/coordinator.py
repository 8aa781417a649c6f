"""
Generation/sending pipeline.

A producer thread fills a bounded queue with batches from a Generator. The
dispatch loop takes one batch per tick and hands it to its own delivery
thread, which calls the Sender. Both loops stop on a shared cancellation
event; the dispatch loop returns only after every delivery it started has
finished.

    producer --put--> Queue(maxsize=C) --get once per tick--> delivery threads --> Sender

A full queue blocks the producer (backpressure). An empty queue holds the
dispatch loop on its current tick. Failed generations and failed sends are
logged and counted; they never stop the pipeline.
"""

import itertools
import logging
import queue
import threading
import time
from collections.abc import Iterator
from enum import Enum

from opentelemetry.context import Context
from opentelemetry.metrics import Meter
from opentelemetry.trace import Tracer

from ..defaults import DEFAULT_QUEUE_SIZE, DEFAULT_SEND_INTERVAL_SECONDS
from ..generators.base import Generator
from ..senders.base import Sender
from .metrics import MetricsSnapshot, PipelineMetrics
from .observer import PipelineObserver

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 0.1


class PipelineState(Enum):
    """Lifecycle of a single-use pipeline."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class PipelineStateError(RuntimeError):
    """Raised when start() is called on a pipeline that already ran."""

    pass


class WaitGroup:
    """Counter of outstanding tasks; wait() blocks until it drops to zero."""

    def __init__(self):
        self._cond = threading.Condition()
        self._count = 0

    def add(self, delta: int = 1) -> None:
        with self._cond:
            count = self._count + delta
            if count < 0:
                raise ValueError("WaitGroup counter went negative")
            self._count = count
            if count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    @property
    def pending(self) -> int:
        with self._cond:
            return self._count

    def wait(self, timeout: float | None = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout)


class Pipeline:
    """
    Couples one Generator to one Sender through a bounded queue.

    Args:
        sender: delivers batches
        generator: produces batches and reports the items-per-batch rate
        metrics: counter registry; a fresh one is created when omitted
        tracer: OpenTelemetry tracer; defaults to the global provider's
        meter: meter for a freshly created registry (ignored with metrics)
        queue_size: capacity of the queue between the loops
        send_interval: seconds between dispatch ticks
        poll_interval: how often blocked queue operations re-check cancellation
        generate_retry_delay: pause after a failed generation (0 retries at once)
    """

    def __init__(
        self,
        sender: Sender,
        generator: Generator,
        *,
        metrics: PipelineMetrics | None = None,
        tracer: Tracer | None = None,
        meter: Meter | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        send_interval: float = DEFAULT_SEND_INTERVAL_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        generate_retry_delay: float = 0.0,
    ):
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        if send_interval <= 0:
            raise ValueError("send_interval must be positive")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if generate_retry_delay < 0:
            raise ValueError("generate_retry_delay must not be negative")

        self._sender = sender
        self._generator = generator
        self._observer = PipelineObserver(tracer, metrics or PipelineMetrics(meter))
        self._queue: queue.Queue[bytes] = queue.Queue(maxsize=queue_size)
        self._send_interval = send_interval
        self._poll_interval = poll_interval
        self._generate_retry_delay = generate_retry_delay
        self._inflight = WaitGroup()
        self._send_ids = itertools.count(1)
        self._state = PipelineState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> PipelineState:
        with self._state_lock:
            return self._state

    @property
    def metrics(self) -> PipelineMetrics:
        return self._observer.metrics

    @property
    def queue_size(self) -> int:
        return self._queue.maxsize

    @property
    def queued(self) -> int:
        """Batches currently waiting in the queue."""
        return self._queue.qsize()

    @property
    def in_flight(self) -> int:
        """Deliveries started and not yet finished."""
        return self._inflight.pending

    def snapshot(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def _set_state(self, state: PipelineState) -> None:
        with self._state_lock:
            self._state = state
        logger.debug("Pipeline state: %s", state.value)

    def start(self, cancel: threading.Event) -> None:
        """
        Run both loops until cancel is set and every delivery has finished.

        Blocks the calling thread, which runs the dispatch loop. Per-batch
        failures are logged and counted, never raised.
        """
        with self._state_lock:
            if self._state is not PipelineState.IDLE:
                raise PipelineStateError(f"Pipeline already used (state: {self._state.value})")
            self._state = PipelineState.RUNNING

        logger.info(
            "Pipeline started: queue_size=%d send_interval=%.3fs rate=%d",
            self.queue_size,
            self._send_interval,
            self._generator.rate,
        )
        parent = PipelineObserver.current_context()
        producer = threading.Thread(
            target=self._produce,
            args=(cancel, parent),
            name="loggen-producer",
            daemon=True,
        )
        producer.start()
        try:
            self._dispatch(cancel, parent)
        except BaseException:
            # Interrupted from outside (e.g. KeyboardInterrupt): stop the producer as well.
            cancel.set()
            raise
        finally:
            producer.join()
            self._set_state(PipelineState.STOPPED)
            snap = self.snapshot()
            logger.info(
                "Pipeline stopped: sends=%d lines=%d bytes=%d errors=%d",
                snap.sends,
                snap.lines,
                snap.bytes,
                snap.errors,
            )

    # Production loop

    def _produce(self, cancel: threading.Event, parent: Context) -> None:
        with self._observer.span("start generating", parent=parent):
            while not cancel.is_set():
                batch = self._generate_once()
                if batch is None:
                    if self._generate_retry_delay:
                        cancel.wait(self._generate_retry_delay)
                    continue
                if not self._put(batch, cancel):
                    logger.debug("Producer cancelled while the queue was full; batch dropped")
                    return

    def _generate_once(self) -> bytes | None:
        with self._observer.span("generate new batch") as span:
            try:
                batch = self._generator.generate()
                if isinstance(batch, (bytearray, memoryview)):
                    batch = bytes(batch)
                elif not isinstance(batch, bytes):
                    raise TypeError(
                        f"generator returned {type(batch).__name__}, expected bytes"
                    )
            except Exception as e:
                logger.error("Error generating batch: %s", e)
                self._observer.record_error(span, e)
                return None
            span.set_attribute("loggen.batch.bytes", len(batch))
            return batch

    def _put(self, batch: bytes, cancel: threading.Event) -> bool:
        """Enqueue, blocking while the queue is full. False if cancelled first."""
        while True:
            try:
                self._queue.put(batch, timeout=self._poll_interval)
                return True
            except queue.Full:
                if cancel.is_set():
                    return False

    # Dispatch loop

    def _dispatch(self, cancel: threading.Event, parent: Context) -> None:
        with self._observer.span("start sending", parent=parent) as span:
            send_parent = self._observer.context_of(span)
            try:
                for _ in self._ticks(cancel):
                    batch = self._take(cancel)
                    if batch is None:
                        break
                    self._spawn(batch, send_parent)
            finally:
                self._set_state(PipelineState.DRAINING)
                pending = self._inflight.pending
                if pending:
                    logger.info("Waiting for %d in-flight batches", pending)
                self._inflight.wait()

    def _ticks(self, cancel: threading.Event) -> Iterator[int]:
        """Yield once per send_interval until cancelled. Late ticks are dropped."""
        interval = self._send_interval
        next_tick = time.monotonic() + interval
        tick = 0
        while not cancel.wait(max(0.0, next_tick - time.monotonic())):
            tick += 1
            yield tick
            next_tick += interval
            now = time.monotonic()
            if next_tick <= now:
                next_tick += (int((now - next_tick) // interval) + 1) * interval

    def _take(self, cancel: threading.Event) -> bytes | None:
        """Dequeue, blocking while the queue is empty. None if cancelled first."""
        while not cancel.is_set():
            try:
                return self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
        return None

    def _spawn(self, batch: bytes, parent: Context) -> None:
        self._inflight.add()
        thread = threading.Thread(
            target=self._deliver,
            args=(batch, parent),
            name=f"loggen-send-{next(self._send_ids)}",
            daemon=True,
        )
        try:
            thread.start()
        except BaseException:
            self._inflight.done()
            raise

    def _deliver(self, batch: bytes, parent: Context) -> None:
        try:
            lines = self._generator.rate
            size = len(batch)
            attributes = {"loggen.batch.lines": lines, "loggen.batch.bytes": size}
            with self._observer.span("receive new batch", parent=parent, attributes=attributes) as span:
                logger.info("Sending batch of %d lines of %d bytes", lines, size)
                self._observer.batch_attempted(lines, size)
                started = time.monotonic()
                try:
                    self._sender.send(batch)
                except Exception as e:
                    self._observer.batch_finished(time.monotonic() - started, success=False)
                    self._observer.batch_failed()
                    logger.error("Error sending request: %s", e)
                    self._observer.record_error(span, e)
                else:
                    self._observer.batch_finished(time.monotonic() - started, success=True)
        finally:
            self._inflight.done()


def start(
    cancel: threading.Event,
    sender: Sender,
    generator: Generator,
    **kwargs,
) -> None:
    """Build a Pipeline (kwargs as for Pipeline) and run it until cancel is set."""
    Pipeline(sender, generator, **kwargs).start(cancel)
