"""
Tracer and meter providers for the generator's self-observability.

Modes:
- otlp: export spans and counters to the configured URL over OTLP
- console: print them to stdout (debugging)
- none: install nothing; the OpenTelemetry API stays a no-op
"""

import logging
from dataclasses import dataclass

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .. import __version__
from ..config import Config
from ..defaults import SERVICE_NAME

logger = logging.getLogger(__name__)

TELEMETRY_MODES = ("otlp", "console", "none")


@dataclass
class Telemetry:
    """Installed providers; shutdown() flushes and stops exporting."""

    tracer_provider: TracerProvider | None = None
    meter_provider: MeterProvider | None = None

    def shutdown(self) -> None:
        if self.tracer_provider is not None:
            self.tracer_provider.shutdown()
        if self.meter_provider is not None:
            self.meter_provider.shutdown()


def build_resource(config: Config, service_name: str = SERVICE_NAME) -> Resource:
    attrs = {f"loggen.label.{k}": v for k, v in config.labels.items()}
    attrs["service.name"] = service_name
    attrs["service.version"] = __version__
    return Resource.create(attrs)


def otlp_endpoint(url: str, signal: str, protocol: str = "http") -> str:
    """
    Endpoint for one signal under the ingestion URL.

    HTTP exporters post to <url>/v1/<signal>; gRPC takes host:port only.
    """
    if protocol == "grpc":
        return url.split("://", 1)[-1].rstrip("/")
    suffix = f"/v1/{signal}"
    url = url.rstrip("/")
    return url if url.endswith(suffix) else f"{url}{suffix}"


def _otlp_exporters(config: Config, protocol: str):
    """Span and metric exporters authenticated with the ingestion credentials."""
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    elif protocol == "http":
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import (  # type: ignore[assignment]
            OTLPMetricExporter,
        )
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
            OTLPSpanExporter,
        )
    else:
        raise ValueError(f"Unknown OTLP protocol: {protocol}")

    headers = config.auth_headers() or None
    spans = OTLPSpanExporter(
        endpoint=otlp_endpoint(config.url, "traces", protocol),
        headers=headers,
        timeout=config.timeout,
    )
    metric_exporter = OTLPMetricExporter(
        endpoint=otlp_endpoint(config.url, "metrics", protocol),
        headers=headers,
        timeout=config.timeout,
    )
    return spans, metric_exporter


def init_telemetry(
    config: Config,
    mode: str = "otlp",
    protocol: str = "http",
    service_name: str = SERVICE_NAME,
    export_interval_ms: int = 5000,
    set_global: bool = True,
) -> Telemetry:
    """Create providers for mode and (by default) install them globally."""
    if mode not in TELEMETRY_MODES:
        raise ValueError(f"Unknown telemetry mode: {mode}")
    if mode == "none":
        return Telemetry()

    if mode == "console":
        span_exporter = ConsoleSpanExporter()
        metric_exporter = ConsoleMetricExporter()
    else:
        span_exporter, metric_exporter = _otlp_exporters(config, protocol)

    resource = build_resource(config, service_name)
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    reader = PeriodicExportingMetricReader(
        metric_exporter,
        export_interval_millis=export_interval_ms,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])

    if set_global:
        trace.set_tracer_provider(tracer_provider)
        metrics.set_meter_provider(meter_provider)
    logger.debug("Telemetry initialized: mode=%s protocol=%s", mode, protocol)
    return Telemetry(tracer_provider=tracer_provider, meter_provider=meter_provider)
