from __future__ import annotations

import json
import re
import sys
from pathlib import Path

import pytest

from stdcheck.core.config import ENV_TIMEOUT, load_tool_settings, positive_float, resolve_setting
from stdcheck.core.context import RunContext
from stdcheck.core.errors import ConfigError
from stdcheck.core.logging import log_event
from stdcheck.core.process import run_command


@pytest.mark.unit
def test_setting_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = {"timeout_seconds": 30}
    assert resolve_setting(None, ENV_TIMEOUT, {}, "timeout_seconds", 120.0, positive_float) == 120.0
    assert resolve_setting(None, ENV_TIMEOUT, settings, "timeout_seconds", 120.0, positive_float) == 30.0
    monkeypatch.setenv(ENV_TIMEOUT, "15")
    assert resolve_setting(None, ENV_TIMEOUT, settings, "timeout_seconds", 120.0, positive_float) == 15.0
    assert resolve_setting(5.0, ENV_TIMEOUT, settings, "timeout_seconds", 120.0, positive_float) == 5.0


@pytest.mark.unit
def test_invalid_setting_names_its_origin(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_TIMEOUT, "-1")
    with pytest.raises(ConfigError, match=r"\$STDCHECK_TIMEOUT"):
        resolve_setting(None, ENV_TIMEOUT, {}, "timeout_seconds", 120.0, positive_float)


@pytest.mark.unit
def test_tool_settings_from_pyproject(tmp_path: Path) -> None:
    assert load_tool_settings(tmp_path) == {}
    (tmp_path / "pyproject.toml").write_text('[tool.stdcheck]\ntimeout_seconds = 10\n', encoding="utf-8")
    assert load_tool_settings(tmp_path) == {"timeout_seconds": 10}
    (tmp_path / "pyproject.toml").write_text("[tool.stdcheck\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid TOML"):
        load_tool_settings(tmp_path)


@pytest.mark.unit
def test_run_context_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = RunContext.from_args(None, tmp_path)
    assert re.fullmatch(r"stdcheck-\d{8}-\d{6}", ctx.run_id)
    assert ctx.repo_root == tmp_path.resolve()
    assert not ctx.log_json
    monkeypatch.setenv("STDCHECK_RUN_ID", "from-env")
    monkeypatch.setenv("STDCHECK_LOG_FORMAT", "json")
    ctx = RunContext.from_args(None, tmp_path)
    assert ctx.run_id == "from-env"
    assert ctx.log_json


@pytest.mark.unit
def test_log_levels_follow_verbosity(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    quiet = RunContext.from_args("r1", tmp_path, "json", quiet=True)
    log_event(quiet, "info", "cli", "start")
    log_event(quiet, "warn", "collector", "unavailable", collector="vcs")
    lines = capsys.readouterr().err.splitlines()
    assert len(lines) == 1
    event = json.loads(lines[0])
    assert (event["level"], event["component"], event["action"], event["collector"]) == ("warn", "collector", "unavailable", "vcs")

    verbose = RunContext.from_args("r2", tmp_path, "text", verbose=True)
    log_event(verbose, "debug", "evaluator", "start", rules=3)
    assert "component=evaluator action=start rules=3" in capsys.readouterr().err
    log_event(None, "error", "cli", "ignored")
    assert capsys.readouterr().err == ""


@pytest.mark.unit
def test_run_command_captures_output_and_timeout(tmp_path: Path) -> None:
    res = run_command([sys.executable, "-c", "print('ok')"], tmp_path)
    assert res.code == 0
    assert res.stdout.strip() == "ok"
    slow = run_command([sys.executable, "-c", "import time; time.sleep(5)"], tmp_path, timeout_seconds=0.2)
    assert slow.code == 124
    assert "timed out" in slow.stderr
