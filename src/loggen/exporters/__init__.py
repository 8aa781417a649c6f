"""Self-observability exporters and providers."""

from .providers import TELEMETRY_MODES, Telemetry, build_resource, init_telemetry, otlp_endpoint

__all__ = [
    "TELEMETRY_MODES",
    "Telemetry",
    "build_resource",
    "init_telemetry",
    "otlp_endpoint",
]
