"""Bounded-queue pipeline coupling a generator to a sender."""

from .coordinator import Pipeline, PipelineState, PipelineStateError, WaitGroup, start
from .metrics import MetricsSnapshot, PipelineMetrics
from .observer import PipelineObserver

__all__ = [
    "Pipeline",
    "PipelineState",
    "PipelineStateError",
    "WaitGroup",
    "start",
    "MetricsSnapshot",
    "PipelineMetrics",
    "PipelineObserver",
]
