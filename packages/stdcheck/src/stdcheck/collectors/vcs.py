from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Mapping

from ..core.errors import CollectionUnavailableError
from ..core.logging import log_event
from ..core.process import CommandResult, run_command
from ..evidence import ObservedValue
from .base import MetricCollector

if TYPE_CHECKING:
    from ..core.context import RunContext

DEFAULT_BASE_REF = "origin/main"
DEFAULT_GIT_TIMEOUT_SECONDS = 60.0
BASE_REF_KEYS = ("vcs.diff_lines", "vcs.diff_files", "vcs.commits_ahead")


def parse_numstat(output: str) -> tuple[int, int]:
    """Return (changed lines, changed files) from `git diff --numstat` output; binary files count zero lines."""
    lines = 0
    files = 0
    for row in output.splitlines():
        parts = row.split("\t", 2)
        if len(parts) != 3:
            continue
        files += 1
        added, deleted = parts[0], parts[1]
        lines += (int(added) if added.isdigit() else 0) + (int(deleted) if deleted.isdigit() else 0)
    return lines, files


def git_error_detail(stderr: str, code: int) -> str:
    """Pick the line of git stderr worth reporting: the `fatal:` line, else the first non-empty one."""
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    for line in lines:
        if line.startswith("fatal:"):
            return line
    return lines[0] if lines else f"exit {code}"


class VcsCollector(MetricCollector):
    """Pull-request size metrics from git, measured as the diff between a base ref and HEAD."""

    name = "vcs"
    description = "git diff size and branch state against a base ref"
    provides = (*BASE_REF_KEYS, "vcs.working_tree_dirty")

    def __init__(
        self,
        repo_root: Path,
        *,
        base_ref: str = DEFAULT_BASE_REF,
        timeout_seconds: float = DEFAULT_GIT_TIMEOUT_SECONDS,
        ctx: RunContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.repo_root = Path(repo_root)
        self.base_ref = base_ref
        self.timeout_seconds = timeout_seconds

    @property
    def source(self) -> str:
        return f"git:{self.base_ref}...HEAD"

    def _git(self, *args: str) -> CommandResult:
        cmd = ["git", *args]
        try:
            result = run_command(cmd, cwd=self.repo_root, timeout_seconds=self.timeout_seconds, ctx=self._ctx)
        except OSError as exc:
            raise CollectionUnavailableError(f"git unavailable: {exc}", collector=self.name) from exc
        if result.code != 0:
            detail = git_error_detail(result.stderr, result.code)
            raise CollectionUnavailableError(f"`{' '.join(cmd)}` failed: {detail}", collector=self.name)
        return result

    def _measure(self) -> Mapping[str, ObservedValue]:
        if not self.repo_root.is_dir():
            raise CollectionUnavailableError(f"repository root {self.repo_root} is not a directory", collector=self.name)
        dirty = bool(self._git("status", "--porcelain").stdout.strip())
        values: dict[str, ObservedValue] = {"vcs.working_tree_dirty": "yes" if dirty else "no"}
        # a missing base ref only loses the keys measured against it
        try:
            diff_lines, diff_files = parse_numstat(self._git("diff", "--numstat", f"{self.base_ref}...HEAD").stdout)
            ahead = self._git("rev-list", "--count", f"{self.base_ref}..HEAD").stdout.strip()
        except CollectionUnavailableError as exc:
            log_event(self._ctx, "warn", "collector", "base-ref-unavailable", collector=self.name, base_ref=self.base_ref, error=str(exc))
            self._unavailable(BASE_REF_KEYS, exc)
            return values
        values.update({"vcs.diff_lines": diff_lines, "vcs.diff_files": diff_files, "vcs.commits_ahead": int(ahead or 0)})
        return values


__all__ = ["BASE_REF_KEYS", "DEFAULT_BASE_REF", "DEFAULT_GIT_TIMEOUT_SECONDS", "VcsCollector", "git_error_detail", "parse_numstat"]
