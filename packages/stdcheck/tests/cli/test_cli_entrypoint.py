from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[4]


def _run(args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT / "packages/stdcheck/src")
    return subprocess.run([sys.executable, "-m", "stdcheck.cli", *args], cwd=cwd, env=env, text=True, capture_output=True, check=False)


@pytest.mark.integration
def test_version_flag_works_outside_git(tmp_path: Path) -> None:
    proc = _run(["--version"], tmp_path)
    assert proc.returncode == 0
    assert "stdcheck 0.1.0" in proc.stdout


@pytest.mark.integration
def test_blocking_failure_exit_code_through_subprocess(tmp_path: Path) -> None:
    catalog = tmp_path / "rules.json"
    catalog.write_text(
        json.dumps(
            [
                {
                    "id": "monitoring.availability-slo",
                    "category": "monitoring",
                    "description": "availability meets the SLO",
                    "metric_key": "service.availability_pct",
                    "operator": "gte",
                    "threshold": 99.9,
                    "severity": "critical",
                }
            ]
        ),
        encoding="utf-8",
    )
    snapshot = tmp_path / "metrics.json"
    snapshot.write_text(json.dumps({"metrics": {"service.availability_pct": 99.5}}), encoding="utf-8")
    proc = _run(["--quiet", "evaluate", "--catalog", str(catalog), "--metrics", str(snapshot), "--no-vcs"], tmp_path)
    assert proc.returncode == 1
    assert proc.stdout.startswith("FAIL: 1 rules, 1 failed (1 blocking)")
    assert "FAIL monitoring.availability-slo (critical): observed 99.5, expected gte 99.9" in proc.stdout
