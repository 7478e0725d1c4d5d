from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from stdcheck.collectors import vcs
from stdcheck.collectors.vcs import VcsCollector, git_error_detail, parse_numstat
from stdcheck.core.errors import CollectionUnavailableError
from stdcheck.core.process import CommandResult


def _fake_git(outputs: dict[str, CommandResult], calls: list[list[str]]):
    def _run(cmd: list[str], cwd: Path, timeout_seconds: float = 0, ctx: object = None) -> CommandResult:
        calls.append(cmd)
        return outputs[cmd[1]]

    return _run


def _ok(stdout: str) -> CommandResult:
    return CommandResult(code=0, stdout=stdout, stderr="", duration_ms=1)


@pytest.mark.unit
def test_parse_numstat_counts_binary_files_without_lines() -> None:
    output = "10\t2\tsrc/a.py\n-\t-\tassets/logo.png\n3\t0\tREADME.md\n"
    assert parse_numstat(output) == (15, 3)


@pytest.mark.unit
def test_vcs_collector_measures_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []
    outputs = {
        "diff": _ok("120\t30\tsrc/a.py\n5\t5\tsrc/b.py\n"),
        "rev-list": _ok("3\n"),
        "status": _ok(" M src/a.py\n"),
    }
    monkeypatch.setattr(vcs, "run_command", _fake_git(outputs, calls))
    collector = VcsCollector(tmp_path, base_ref="main")
    assert collector.collect("vcs.diff_lines").observed_value == 160
    assert collector.collect("vcs.diff_files").observed_value == 2
    assert collector.collect("vcs.commits_ahead").observed_value == 3
    assert collector.collect("vcs.working_tree_dirty").observed_value == "yes"
    assert collector.collect("vcs.diff_lines").source == "git:main...HEAD"
    assert len(calls) == 3
    assert calls[0] == ["git", "status", "--porcelain"]
    assert calls[1] == ["git", "diff", "--numstat", "main...HEAD"]


@pytest.mark.unit
def test_missing_git_binary_is_unavailable(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing(*_args: object, **_kwargs: object) -> CommandResult:
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(vcs, "run_command", _missing)
    with pytest.raises(CollectionUnavailableError, match="git unavailable"):
        VcsCollector(tmp_path).collect("vcs.commits_ahead")


@pytest.mark.unit
def test_missing_base_ref_keeps_working_tree_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []
    missing = CommandResult(
        code=128,
        stdout="",
        stderr="fatal: ambiguous argument 'origin/main...HEAD': unknown revision or path not in the working tree.\n"
        "Use '--' to separate paths from revisions, like this:\n"
        "'git <command> [<revision>...] -- [<file>...]'\n",
        duration_ms=1,
    )
    monkeypatch.setattr(vcs, "run_command", _fake_git({"status": _ok(""), "diff": missing}, calls))
    collector = VcsCollector(tmp_path)
    assert collector.collect("vcs.working_tree_dirty").observed_value == "no"
    for key in ("vcs.diff_lines", "vcs.diff_files", "vcs.commits_ahead"):
        with pytest.raises(CollectionUnavailableError, match="fatal: ambiguous argument"):
            collector.collect(key)
    assert [cmd[1] for cmd in calls] == ["status", "diff"]


@pytest.mark.unit
def test_failed_measurement_runs_git_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []
    not_a_repo = CommandResult(code=128, stdout="", stderr="fatal: not a git repository\n", duration_ms=1)
    monkeypatch.setattr(vcs, "run_command", _fake_git({"status": not_a_repo}, calls))
    collector = VcsCollector(tmp_path)
    for key in collector.provides:
        with pytest.raises(CollectionUnavailableError, match="not a git repository"):
            collector.collect(key)
    assert len(calls) == 1


@pytest.mark.unit
def test_git_error_detail_prefers_fatal_line() -> None:
    assert git_error_detail("warning: x\nfatal: bad revision 'main'\nusage: git diff\n", 128) == "fatal: bad revision 'main'"
    assert git_error_detail("\nerror: something broke\nmore\n", 1) == "error: something broke"
    assert git_error_detail("", 3) == "exit 3"


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_fresh_clone_without_origin_still_reports_clean_tree(tmp_path: Path) -> None:
    def _git(*args: str) -> None:
        subprocess.run(
            ["git", "-c", "user.name=stdcheck", "-c", "user.email=stdcheck@example.invalid", "-c", "commit.gpgsign=false", *args],
            cwd=tmp_path,
            check=True,
            capture_output=True,
        )

    (tmp_path / "app.py").write_text("print('hi')\n", encoding="utf-8")
    _git("init", "-q")
    _git("add", "app.py")
    _git("commit", "-q", "-m", "initial")
    collector = VcsCollector(tmp_path, timeout_seconds=30)
    assert collector.collect("vcs.working_tree_dirty").observed_value == "no"
    with pytest.raises(CollectionUnavailableError, match="fatal:"):
        collector.collect("vcs.diff_lines")
