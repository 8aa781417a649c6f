"""Batch generators for logs, metrics and traces."""

from .base import Generator
from .log_generator import LOKI_PUSH_PATH, LogGenerator
from .metric_generator import INFLUX_WRITE_PATH, MetricGenerator
from .trace_generator import OTLP_TRACES_PATH, TraceGenerator

GENERATOR_KINDS = {
    "logs": LogGenerator,
    "metrics": MetricGenerator,
    "traces": TraceGenerator,
}


def create_generator(
    kind: str,
    rate: int,
    labels: dict[str, str] | None = None,
    seed: int | None = None,
) -> LogGenerator | MetricGenerator | TraceGenerator:
    """Create a generator by kind ("logs", "metrics" or "traces")."""
    try:
        cls = GENERATOR_KINDS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown generator kind: {kind} (expected one of {', '.join(GENERATOR_KINDS)})"
        ) from None
    return cls(rate, labels=labels, seed=seed)


__all__ = [
    "Generator",
    "LogGenerator",
    "MetricGenerator",
    "TraceGenerator",
    "GENERATOR_KINDS",
    "LOKI_PUSH_PATH",
    "INFLUX_WRITE_PATH",
    "OTLP_TRACES_PATH",
    "create_generator",
]
