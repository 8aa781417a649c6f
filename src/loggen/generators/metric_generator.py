"""
Generate fake metric samples as InfluxDB line protocol.

One batch holds `rate` lines accepted by /influx/api/v2/write:

    loggen_cpu_usage_percent,host=host-2,job=loggen value=41.87 1700000000000000000

Counters (`*_total`) grow monotonically per series across batches; the other
measurements are sampled fresh each time.
"""

import random
import time
from collections.abc import Callable

from .base import Generator
from .distributions import Distribution, LogNormalDistribution, NormalDistribution

INFLUX_WRITE_PATH = "/influx/api/v2/write"

_HOSTS = [f"host-{i}" for i in range(1, 6)]


def _escape_tag(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


class MetricGenerator(Generator):
    """Fabricates `rate` line-protocol samples per batch."""

    path = INFLUX_WRITE_PATH
    content_type = "text/plain; charset=utf-8"

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
        # name -> (distribution, lower bound, upper bound)
        self._gauges: dict[str, tuple[Distribution, float, float | None]] = {
            "loggen_cpu_usage_percent": (
                NormalDistribution(rng=self._rng, mean=45.0, stddev=15.0),
                0.0,
                100.0,
            ),
            "loggen_memory_usage_bytes": (
                NormalDistribution(rng=self._rng, mean=2.5e9, stddev=4e8),
                0.0,
                None,
            ),
            "loggen_http_request_duration_seconds": (
                LogNormalDistribution(rng=self._rng, median=0.045, sigma=0.9),
                0.0,
                None,
            ),
        }
        self._counter_names = ["loggen_http_requests_total"]
        self._counter_values: dict[tuple[str, str], int] = {}

    @property
    def rate(self) -> int:
        return self._rate

    def _tags(self, host: str) -> str:
        tags = {**self.labels, "host": host}
        return ",".join(f"{_escape_tag(k)}={_escape_tag(v)}" for k, v in sorted(tags.items()))

    def _sample(self, name: str, host: str) -> str:
        if name in self._counter_names:
            key = (name, host)
            value = self._counter_values.get(key, 0) + self._rng.randint(1, 50)
            self._counter_values[key] = value
            return f"{value}i"
        dist, low, high = self._gauges[name]
        return f"{dist.sample_bounded(low, high):.4f}"

    def generate(self) -> bytes:
        now = self._clock()
        names = list(self._gauges) + self._counter_names
        lines = []
        for i in range(self._rate):
            name = self._rng.choice(names)
            host = self._rng.choice(_HOSTS)
            lines.append(f"{name},{self._tags(host)} value={self._sample(name, host)} {now + i}")
        return ("\n".join(lines) + "\n").encode("utf-8")
