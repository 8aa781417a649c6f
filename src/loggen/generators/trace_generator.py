"""
Generate fake traces as OTLP/JSON batches.

One batch is an ExportTraceServiceRequest in JSON form, accepted by
/v1/traces (qryn, Tempo and the OpenTelemetry collector):

    {"resourceSpans": [
        {"resource": {"attributes": [{"key": "service.name", "value": {"stringValue": "frontend"}}]},
         "scopeSpans": [{"scope": {"name": "loggen"}, "spans": [...]}]}
    ]}

Each batch holds exactly `rate` spans grouped into traces. A trace is one
SERVER root with CLIENT/INTERNAL children that fit inside the root's time
window:

  GET /api/v1/orders (SERVER, frontend)
  ├── SELECT orders (CLIENT, frontend)
  ├── POST /charge (CLIENT, frontend)
  └── render (INTERNAL, frontend)
"""

import json
import random
import time
from collections.abc import Callable
from typing import Any

from .base import Generator
from .distributions import CategoricalDistribution, LogNormalDistribution

OTLP_TRACES_PATH = "/v1/traces"

SPAN_KIND_INTERNAL = 1
SPAN_KIND_SERVER = 2
SPAN_KIND_CLIENT = 3
STATUS_CODE_OK = 1
STATUS_CODE_ERROR = 2

_SERVICES = ["frontend", "checkout", "inventory", "payments"]
_ROUTES = ["/api/v1/orders", "/api/v1/cart", "/api/v1/users", "/api/v1/payments", "/login"]
_METHODS = {"GET": 0.7, "POST": 0.25, "DELETE": 0.05}
# (name, kind, extra attributes)
_CHILD_OPERATIONS: list[tuple[str, int, dict[str, str]]] = [
    ("SELECT orders", SPAN_KIND_CLIENT, {"db.system": "postgresql"}),
    ("SELECT users", SPAN_KIND_CLIENT, {"db.system": "postgresql"}),
    ("GET cache", SPAN_KIND_CLIENT, {"db.system": "redis"}),
    ("POST /charge", SPAN_KIND_CLIENT, {"http.request.method": "POST"}),
    ("render", SPAN_KIND_INTERNAL, {}),
    ("validate request", SPAN_KIND_INTERNAL, {}),
]
_ERROR_PROBABILITY = 0.05
_MAX_SPANS_PER_TRACE = 6


def _attr(key: str, value: Any) -> dict[str, Any]:
    if isinstance(value, bool):
        return {"key": key, "value": {"boolValue": value}}
    if isinstance(value, int):
        return {"key": key, "value": {"intValue": str(value)}}
    return {"key": key, "value": {"stringValue": str(value)}}


class TraceGenerator(Generator):
    """Fabricates `rate` spans per batch, grouped into traces by service."""

    path = OTLP_TRACES_PATH
    content_type = "application/json"

    def __init__(
        self,
        rate: int,
        labels: dict[str, str] | None = None,
        seed: int | None = None,
        clock: Callable[[], int] = time.time_ns,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        self._rate = rate
        self.labels = dict(labels or {})
        self.labels.setdefault("job", "loggen")
        self._clock = clock
        self._rng = random.Random(seed)
        self._methods = CategoricalDistribution(
            rng=self._rng, categories=list(_METHODS), weights=list(_METHODS.values())
        )
        self._root_ms = LogNormalDistribution(rng=self._rng, median=80.0, sigma=0.7)

    @property
    def rate(self) -> int:
        return self._rate

    def _trace_id(self) -> str:
        return f"{self._rng.getrandbits(128):032x}"

    def _span_id(self) -> str:
        return f"{self._rng.getrandbits(64) or 1:016x}"

    def _trace(self, start_ns: int, span_count: int) -> list[dict[str, Any]]:
        trace_id = self._trace_id()
        root_id = self._span_id()
        duration_ns = int(self._root_ms.sample_bounded(min_val=1.0) * 1_000_000)
        failed = self._rng.random() < _ERROR_PROBABILITY
        method = self._methods.sample()
        route = self._rng.choice(_ROUTES)
        root = {
            "traceId": trace_id,
            "spanId": root_id,
            "name": f"{method} {route}",
            "kind": SPAN_KIND_SERVER,
            "startTimeUnixNano": str(start_ns),
            "endTimeUnixNano": str(start_ns + duration_ns),
            "attributes": [
                _attr("http.request.method", method),
                _attr("http.route", route),
                _attr("http.response.status_code", 500 if failed else 200),
            ],
            "status": {"code": STATUS_CODE_ERROR if failed else STATUS_CODE_OK},
        }
        spans = [root]
        # Children run back to back inside the root window.
        cursor = start_ns + duration_ns // 20
        slot = max(1, (duration_ns - duration_ns // 10) // max(1, span_count - 1))
        for _ in range(span_count - 1):
            name, kind, extra = self._rng.choice(_CHILD_OPERATIONS)
            child_ns = max(1, int(slot * self._rng.uniform(0.3, 0.95)))
            spans.append(
                {
                    "traceId": trace_id,
                    "spanId": self._span_id(),
                    "parentSpanId": root_id,
                    "name": name,
                    "kind": kind,
                    "startTimeUnixNano": str(cursor),
                    "endTimeUnixNano": str(cursor + child_ns),
                    "attributes": [_attr(k, v) for k, v in extra.items()],
                    "status": {"code": STATUS_CODE_OK},
                }
            )
            cursor += slot
        return spans

    def generate(self) -> bytes:
        now = self._clock()
        by_service: dict[str, list[dict[str, Any]]] = {}
        remaining = self._rate
        offset = 0
        while remaining > 0:
            count = min(remaining, self._rng.randint(1, _MAX_SPANS_PER_TRACE))
            service = self._rng.choice(_SERVICES)
            by_service.setdefault(service, []).extend(self._trace(now + offset, count))
            remaining -= count
            offset += 1_000
        payload = {
            "resourceSpans": [
                {
                    "resource": {
                        "attributes": [_attr("service.name", service)]
                        + [_attr(k, v) for k, v in self.labels.items()]
                    },
                    "scopeSpans": [{"scope": {"name": "loggen"}, "spans": spans}],
                }
                for service, spans in by_service.items()
            ]
        }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
