"""
Generate fake log lines as Loki push-API batches.

One batch is a JSON document accepted by /loki/api/v1/push:

    {"streams": [
        {"stream": {"job": "loggen", "level": "info"},
         "values": [["1700000000000000000", "ts=... level=info method=GET ..."], ...]}
    ]}

Lines are logfmt-encoded HTTP access records. Streams are split by level so
the level is queryable as a label.
"""

import json
import random
import time
from collections.abc import Callable
from datetime import datetime, timezone

from .base import Generator
from .distributions import CategoricalDistribution, LogNormalDistribution

LOKI_PUSH_PATH = "/loki/api/v1/push"

_LEVELS = {"info": 0.82, "debug": 0.08, "warn": 0.07, "error": 0.03}
_METHODS = {"GET": 0.7, "POST": 0.2, "PUT": 0.06, "DELETE": 0.04}
_PATHS = [
    "/api/v1/users",
    "/api/v1/orders",
    "/api/v1/orders/{id}",
    "/api/v1/cart",
    "/api/v1/payments",
    "/healthz",
    "/login",
]
_STATUS_BY_LEVEL = {
    "info": [200, 201, 204, 304],
    "debug": [200],
    "warn": [400, 401, 404, 429],
    "error": [500, 502, 503, 504],
}
_MESSAGES = {
    "info": "request completed",
    "debug": "cache lookup finished",
    "warn": "request rejected",
    "error": "upstream request failed",
}


class LogGenerator(Generator):
    """Fabricates `rate` logfmt access-log lines per batch."""

    path = LOKI_PUSH_PATH
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
        self._levels = CategoricalDistribution(
            rng=self._rng, categories=list(_LEVELS), weights=list(_LEVELS.values())
        )
        self._methods = CategoricalDistribution(
            rng=self._rng, categories=list(_METHODS), weights=list(_METHODS.values())
        )
        self._latency_ms = LogNormalDistribution(rng=self._rng, median=45.0, sigma=0.9)

    @property
    def rate(self) -> int:
        return self._rate

    def _line(self, ts_ns: int, level: str) -> str:
        path = self._rng.choice(_PATHS).replace("{id}", str(self._rng.randint(1, 99999)))
        status = self._rng.choice(_STATUS_BY_LEVEL[level])
        latency = self._latency_ms.sample_bounded(min_val=0.1)
        if level == "error":
            latency *= 4
        ts = datetime.fromtimestamp(ts_ns / 1e9, tz=timezone.utc).isoformat(timespec="milliseconds")
        return (
            f"ts={ts} level={level} method={self._methods.sample()} path={path} "
            f"status={status} latency_ms={latency:.1f} "
            f"trace_id={self._rng.getrandbits(128):032x} "
            f'msg="{_MESSAGES[level]}"'
        )

    def generate(self) -> bytes:
        now = self._clock()
        streams: dict[str, list[list[str]]] = {}
        for i in range(self._rate):
            ts_ns = now + i
            level = self._levels.sample()
            streams.setdefault(level, []).append([str(ts_ns), self._line(ts_ns, level)])
        payload = {
            "streams": [
                {"stream": {**self.labels, "level": level}, "values": values}
                for level, values in streams.items()
            ]
        }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
