from __future__ import annotations

from pathlib import Path

import pytest

from stdcheck.collectors import CollectorOptions, PrometheusCollector, VcsCollector, build_collector_set
from stdcheck.collectors.prometheus import DEFAULT_REQUEST_TIMEOUT_SECONDS
from stdcheck.collectors.vcs import DEFAULT_GIT_TIMEOUT_SECONDS
from stdcheck.core.context import RunContext


def _backends(tmp_path: Path, options: CollectorOptions) -> tuple[VcsCollector, PrometheusCollector]:
    collectors = list(build_collector_set(RunContext.from_args("factory", tmp_path, quiet=True), options))
    git = next(item for item in collectors if isinstance(item, VcsCollector))
    prom = next(item for item in collectors if isinstance(item, PrometheusCollector))
    return git, prom


@pytest.mark.unit
def test_run_timeout_reaches_git_and_metrics_backend(tmp_path: Path) -> None:
    options = CollectorOptions(static_analysis=False, prometheus_url="http://prom.invalid", timeout_seconds=600.0)
    git, prom = _backends(tmp_path, options)
    assert git.timeout_seconds == 600.0
    assert prom.request_timeout_seconds == 600.0


@pytest.mark.unit
def test_backend_timeouts_default_without_run_timeout(tmp_path: Path) -> None:
    git, prom = _backends(tmp_path, CollectorOptions(static_analysis=False, prometheus_url="http://prom.invalid"))
    assert git.timeout_seconds == DEFAULT_GIT_TIMEOUT_SECONDS
    assert prom.request_timeout_seconds == DEFAULT_REQUEST_TIMEOUT_SECONDS


@pytest.mark.unit
def test_registration_order_is_snapshots_then_computed_then_backend(tmp_path: Path) -> None:
    snapshot = tmp_path / "metrics.json"
    options = CollectorOptions(metrics_snapshots=(snapshot,), prometheus_url="http://prom.invalid")
    names = build_collector_set(RunContext.from_args("factory", tmp_path, quiet=True), options).names()
    assert names[-3:] == ("static-analysis", "vcs", "prometheus")
    assert names[0].startswith("snapshot")
