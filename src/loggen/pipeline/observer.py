"""
Tracing and counter hooks used by the pipeline.

The pipeline only talks to PipelineObserver; it never touches providers or
exporters. With no providers installed the OpenTelemetry API hands out
no-op tracers and meters, so the pipeline runs without a telemetry backend.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from .metrics import PipelineMetrics


class PipelineObserver:
    """Narrow span/counter interface over an OpenTelemetry tracer and PipelineMetrics."""

    def __init__(self, tracer: Tracer | None = None, metrics: PipelineMetrics | None = None):
        self.tracer = tracer or trace.get_tracer("loggen.pipeline")
        self.metrics = metrics or PipelineMetrics()

    @contextmanager
    def span(
        self,
        name: str,
        parent: Context | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> Iterator[Span]:
        """Start a span as current in this thread; ended when the block exits."""
        with self.tracer.start_as_current_span(
            name,
            context=parent,
            attributes=attributes,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield span

    @staticmethod
    def current_context() -> Context:
        """Context of the calling thread; new threads start from an empty one."""
        return otel_context.get_current()

    @staticmethod
    def context_of(span: Span) -> Context:
        """Context carrying span as parent, for spans started on other threads."""
        return trace.set_span_in_context(span)

    @staticmethod
    def record_error(span: Span, error: BaseException) -> None:
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))

    def batch_attempted(self, lines: int, size: int) -> None:
        self.metrics.record_attempt(lines, size)

    def batch_failed(self) -> None:
        self.metrics.record_error()

    def batch_finished(self, seconds: float, success: bool) -> None:
        self.metrics.record_send_duration(seconds, success)
