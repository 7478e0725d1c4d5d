from __future__ import annotations

import socket
from pathlib import Path
from typing import Any

import pytest
from hypothesis import settings
from hypothesis.database import DirectoryBasedExampleDatabase

_ALLOWED_MARKERS = {"unit", "integration", "slow"}

_ROOT = Path(__file__).resolve().parents[3]
_HYPOTHESIS_DB = _ROOT / "artifacts/stdcheck/.hypothesis/examples"
_HYPOTHESIS_DB.parent.mkdir(parents=True, exist_ok=True)
settings.register_profile("stdcheck", database=DirectoryBasedExampleDatabase(_HYPOTHESIS_DB), deadline=None)
settings.load_profile("stdcheck")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in unit tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STDCHECK_RUN_ID", "STDCHECK_TIMEOUT", "STDCHECK_LOG_FORMAT", "STDCHECK_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)


def rule_row(rule_id: str = "quality.function-length", **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": rule_id,
        "category": "quality",
        "description": "functions stay short",
        "metric_key": "code.max_function_lines",
        "operator": "lt",
        "threshold": 50,
        "severity": "high",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_rule_row():
    return rule_row


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "src" / "app.py").write_text(
        "def add(a: int, b: int) -> int:\n    return a + b\n\n\ndef shout(text):\n    if text:\n        return text.upper()\n    return ''\n",
        encoding="utf-8",
    )
    return repo
