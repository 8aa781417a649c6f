"""Tests for the log, metric and trace generators."""

import json
import random
import re

import pytest

from loggen.generators import (
    INFLUX_WRITE_PATH,
    LOKI_PUSH_PATH,
    OTLP_TRACES_PATH,
    LogGenerator,
    MetricGenerator,
    TraceGenerator,
    create_generator,
)
from loggen.generators.distributions import (
    CategoricalDistribution,
    LogNormalDistribution,
)

_LINE_PROTOCOL = re.compile(r"^[a-z_]+(,(?:\\ |[^ ])+)? value=-?[0-9.]+i? \d+$")


def _fixed_clock() -> int:
    return 1_700_000_000_000_000_000


def test_log_batch_is_loki_push_document() -> None:
    """One batch carries `rate` lines spread over per-level streams."""
    generator = LogGenerator(rate=50, labels={"env": "test"}, seed=1, clock=_fixed_clock)

    payload = json.loads(generator.generate())

    streams = payload["streams"]
    assert sum(len(s["values"]) for s in streams) == 50
    for stream in streams:
        labels = stream["stream"]
        assert labels["env"] == "test"
        assert labels["job"] == "loggen"
        for ts, line in stream["values"]:
            assert int(ts) >= _fixed_clock()
            assert f"level={labels['level']}" in line
            assert "msg=" in line
    assert generator.rate == 50
    assert generator.path == LOKI_PUSH_PATH


def test_log_generator_is_reproducible_with_seed() -> None:
    a = LogGenerator(rate=10, seed=7, clock=_fixed_clock)
    b = LogGenerator(rate=10, seed=7, clock=_fixed_clock)
    assert a.generate() == b.generate()


def test_metric_batch_is_line_protocol() -> None:
    generator = MetricGenerator(rate=40, labels={"env": "load test"}, seed=3, clock=_fixed_clock)

    lines = generator.generate().decode("utf-8").splitlines()

    assert len(lines) == 40
    for line in lines:
        assert _LINE_PROTOCOL.match(line), line
        assert "env=load\\ test" in line
        assert "job=loggen" in line
    assert generator.path == INFLUX_WRITE_PATH


def test_metric_counters_are_monotonic_per_series() -> None:
    generator = MetricGenerator(rate=200, seed=5, clock=_fixed_clock)
    last: dict[str, int] = {}
    for _ in range(3):
        for line in generator.generate().decode("utf-8").splitlines():
            if not line.startswith("loggen_http_requests_total"):
                continue
            series, fields, _ts = line.split(" ")
            value = int(fields.removeprefix("value=").removesuffix("i"))
            assert value > last.get(series, 0)
            last[series] = value
    assert last


def test_cpu_gauge_is_bounded() -> None:
    generator = MetricGenerator(rate=500, seed=11, clock=_fixed_clock)
    for line in generator.generate().decode("utf-8").splitlines():
        if line.startswith("loggen_cpu_usage_percent"):
            value = float(line.split(" ")[1].removeprefix("value="))
            assert 0.0 <= value <= 100.0


@pytest.mark.parametrize("cls", [LogGenerator, MetricGenerator, TraceGenerator])
def test_rate_must_be_positive(cls) -> None:
    with pytest.raises(ValueError):
        cls(rate=0)


def test_create_generator_by_kind() -> None:
    assert isinstance(create_generator("logs", 5), LogGenerator)
    assert isinstance(create_generator("metrics", 5, labels={"a": "b"}), MetricGenerator)
    assert isinstance(create_generator("traces", 5, seed=1), TraceGenerator)
    with pytest.raises(ValueError, match="Unknown generator kind"):
        create_generator("profiles", 5)


def test_categorical_requires_matching_weights() -> None:
    with pytest.raises(ValueError):
        CategoricalDistribution(categories=["a", "b"], weights=[1.0])


def test_categorical_weights_are_normalised() -> None:
    dist = CategoricalDistribution(
        rng=random.Random(0), categories=["GET", "POST"], weights=[3, 1]
    )
    assert dist.weights == [0.75, 0.25]
    assert dist.sample() in ("GET", "POST")


def test_log_normal_bounded_sample() -> None:
    dist = LogNormalDistribution(rng=random.Random(2), median=10.0, sigma=1.5)
    for _ in range(100):
        assert 1.0 <= dist.sample_bounded(min_val=1.0, max_val=50.0) <= 50.0


def _spans(payload: dict) -> list[dict]:
    return [
        span
        for resource_spans in payload["resourceSpans"]
        for scope_spans in resource_spans["scopeSpans"]
        for span in scope_spans["spans"]
    ]


def test_trace_batch_is_otlp_json() -> None:
    """One batch carries exactly `rate` spans with hex ids and string timestamps."""
    generator = TraceGenerator(rate=30, labels={"env": "test"}, seed=4, clock=_fixed_clock)

    payload = json.loads(generator.generate())

    spans = _spans(payload)
    assert len(spans) == 30
    for span in spans:
        assert re.fullmatch(r"[0-9a-f]{32}", span["traceId"])
        assert re.fullmatch(r"[0-9a-f]{16}", span["spanId"])
        assert int(span["startTimeUnixNano"]) >= _fixed_clock()
        assert int(span["endTimeUnixNano"]) > int(span["startTimeUnixNano"])
        assert span["status"]["code"] in (1, 2)
    for resource_spans in payload["resourceSpans"]:
        attributes = {
            a["key"]: a["value"]["stringValue"]
            for a in resource_spans["resource"]["attributes"]
        }
        assert attributes["env"] == "test"
        assert attributes["job"] == "loggen"
        assert attributes["service.name"]
    assert generator.rate == 30
    assert generator.path == OTLP_TRACES_PATH
    assert generator.content_type == "application/json"


def test_trace_children_point_at_root_within_its_window() -> None:
    generator = TraceGenerator(rate=100, seed=9, clock=_fixed_clock)

    spans = _spans(json.loads(generator.generate()))

    roots = {s["spanId"]: s for s in spans if "parentSpanId" not in s}
    assert roots
    for span in spans:
        if "parentSpanId" not in span:
            assert span["kind"] == 2
            continue
        root = roots[span["parentSpanId"]]
        assert span["traceId"] == root["traceId"]
        assert int(span["startTimeUnixNano"]) >= int(root["startTimeUnixNano"])
        assert int(span["endTimeUnixNano"]) <= int(root["endTimeUnixNano"])
    assert len({s["traceId"] for s in roots.values()}) == len(roots)


def test_trace_generator_is_reproducible_with_seed() -> None:
    a = TraceGenerator(rate=12, seed=3, clock=_fixed_clock)
    b = TraceGenerator(rate=12, seed=3, clock=_fixed_clock)
    assert a.generate() == b.generate()
