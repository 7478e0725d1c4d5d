from __future__ import annotations

import json
import urllib.error
from pathlib import Path

import pytest

from stdcheck.collectors import PrometheusCollector, prometheus
from stdcheck.collectors.prometheus import load_queries, parse_query_response
from stdcheck.core.errors import CollectionUnavailableError, ConfigError


def _vector(value: str) -> str:
    return json.dumps({"status": "success", "data": {"resultType": "vector", "result": [{"metric": {}, "value": [1700000000, value]}]}})


@pytest.mark.unit
def test_parse_query_response_shapes() -> None:
    assert parse_query_response(_vector("0.25")) == 0.25
    assert parse_query_response(json.dumps({"status": "success", "data": {"resultType": "scalar", "result": [1, "7"]}})) == 7.0
    assert parse_query_response(json.dumps({"status": "success", "data": {"resultType": "vector", "result": []}})) is None
    with pytest.raises(ValueError, match="bad_data"):
        parse_query_response(json.dumps({"status": "error", "error": "bad_data"}))


@pytest.mark.unit
def test_collector_queries_configured_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[tuple[str, dict[str, str] | None]] = []

    def _fake_get(url: str, params: dict[str, str] | None = None, timeout_seconds: float = 5) -> tuple[int, str]:
        seen.append((url, params))
        return 200, _vector("212")

    monkeypatch.setattr(prometheus, "http_get", _fake_get)
    collector = PrometheusCollector("http://prom:9090/", {"service.p95_latency_ms": "histogram_quantile(0.95, x)"})
    evidence = collector.collect("service.p95_latency_ms")
    assert evidence.observed_value == 212
    assert isinstance(evidence.observed_value, int)
    assert evidence.source == "prometheus:http://prom:9090"
    assert seen == [("http://prom:9090/api/v1/query", {"query": "histogram_quantile(0.95, x)"})]
    assert collector.collect("service.error_rate_pct") is None


@pytest.mark.unit
def test_unreachable_backend_is_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def _down(*_args: object, **_kwargs: object) -> tuple[int, str]:
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(prometheus, "http_get", _down)
    collector = PrometheusCollector("http://prom:9090", {"k": "up"})
    with pytest.raises(CollectionUnavailableError, match="unreachable"):
        collector.collect("k")


@pytest.mark.unit
def test_load_queries_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "queries.yaml"
    path.write_text("queries:\n  service.error_rate_pct: ' sum(rate(errors[5m])) '\n", encoding="utf-8")
    assert load_queries(path) == {"service.error_rate_pct": "sum(rate(errors[5m]))"}
    path.write_text("queries:\n  k: 3\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_queries(path)
