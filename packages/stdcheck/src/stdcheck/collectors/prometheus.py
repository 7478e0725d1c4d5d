from __future__ import annotations

import json
import math
import urllib.error
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import yaml

from ..core.errors import CollectionUnavailableError, ConfigError
from ..core.logging import log_event
from ..core.network import http_get
from ..evidence import Evidence

if TYPE_CHECKING:
    from ..core.context import RunContext

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


def load_queries(path: Path) -> dict[str, str]:
    """Read a `metric_key -> PromQL` mapping from a JSON or YAML file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(text) if Path(path).suffix.lower() in {".yaml", ".yml"} else json.loads(text)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read prometheus queries {path}: {exc}") from exc
    queries = data.get("queries", data) if isinstance(data, dict) else None
    if not isinstance(queries, dict) or not all(isinstance(v, str) and v.strip() for v in queries.values()):
        raise ConfigError(f"prometheus queries {path} must map metric keys to PromQL strings")
    return {str(key): str(value).strip() for key, value in queries.items()}


def parse_query_response(body: str) -> float | None:
    """Return the sample value of an instant query, or None when the result is empty."""
    payload: Any = json.loads(body)
    if not isinstance(payload, dict) or payload.get("status") != "success":
        error = payload.get("error", "unknown error") if isinstance(payload, dict) else "malformed response"
        raise ValueError(f"query failed: {error}")
    data = payload.get("data") or {}
    result_type = data.get("resultType")
    result = data.get("result")
    if result_type == "vector":
        if not result:
            return None
        sample = result[0].get("value", [])
    elif result_type == "scalar":
        sample = result or []
    else:
        raise ValueError(f"unsupported resultType `{result_type}`")
    if len(sample) != 2:
        raise ValueError("malformed sample")
    value = float(sample[1])
    if not math.isfinite(value):
        return None
    return value


class PrometheusCollector:
    """Latency, error-rate and SLO metrics from a Prometheus-compatible HTTP API."""

    description = "instant PromQL queries against /api/v1/query"

    def __init__(
        self,
        base_url: str,
        queries: Mapping[str, str],
        *,
        name: str = "prometheus",
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        ctx: RunContext | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.queries = dict(queries)
        self.request_timeout_seconds = request_timeout_seconds
        self._ctx = ctx

    @property
    def provides(self) -> tuple[str, ...]:
        return tuple(sorted(self.queries))

    def collect(self, metric_key: str) -> Evidence | None:
        query = self.queries.get(metric_key)
        if query is None:
            return None
        url = f"{self.base_url}/api/v1/query"
        try:
            status, body = http_get(url, {"query": query}, timeout_seconds=self.request_timeout_seconds)
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise CollectionUnavailableError(
                f"prometheus at {self.base_url} unreachable: {exc}", collector=self.name, metric_key=metric_key
            ) from exc
        if status != 200:
            raise CollectionUnavailableError(f"prometheus returned HTTP {status}", collector=self.name, metric_key=metric_key)
        try:
            value = parse_query_response(body)
        except (ValueError, TypeError, AttributeError, IndexError) as exc:
            raise CollectionUnavailableError(
                f"prometheus query for `{metric_key}` failed: {exc}", collector=self.name, metric_key=metric_key
            ) from exc
        log_event(self._ctx, "debug", "collector", "query", collector=self.name, metric_key=metric_key, empty=value is None)
        if value is None:
            return None
        observed: int | float = int(value) if value.is_integer() else value
        return Evidence(metric_key=metric_key, observed_value=observed, source=f"prometheus:{self.base_url}")


__all__ = ["DEFAULT_REQUEST_TIMEOUT_SECONDS", "PrometheusCollector", "load_queries", "parse_query_response"]
