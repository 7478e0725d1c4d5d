from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping
from xml.etree import ElementTree

from ..core.errors import CollectionUnavailableError
from ..evidence import ObservedValue
from .base import MetricCollector

if TYPE_CHECKING:
    from ..core.context import RunContext

DEFAULT_REPORT_NAMES = ("coverage.xml", "coverage.json")


def _pct(ratio: float) -> float:
    return round(ratio * 100.0, 2)


def parse_cobertura(text: str) -> dict[str, ObservedValue]:
    root = ElementTree.fromstring(text)
    if root.tag != "coverage":
        raise ValueError(f"expected a Cobertura <coverage> root, got <{root.tag}>")
    values: dict[str, ObservedValue] = {}
    if root.get("line-rate") is not None:
        values["testing.line_coverage_pct"] = _pct(float(root.get("line-rate", "0")))
    if root.get("branch-rate") is not None and int(root.get("branches-valid", "1") or 0) > 0:
        values["testing.branch_coverage_pct"] = _pct(float(root.get("branch-rate", "0")))
    return values


def parse_coverage_json(payload: Any) -> dict[str, ObservedValue]:
    totals = payload.get("totals") if isinstance(payload, dict) else None
    if not isinstance(totals, dict):
        raise ValueError("expected a coverage.py JSON report with `totals`")
    values: dict[str, ObservedValue] = {}
    statements = int(totals.get("num_statements", 0))
    if statements:
        values["testing.line_coverage_pct"] = _pct(int(totals.get("covered_lines", 0)) / statements)
    else:
        values["testing.line_coverage_pct"] = 100.0
    branches = int(totals.get("num_branches", 0))
    if branches:
        values["testing.branch_coverage_pct"] = _pct(int(totals.get("covered_branches", 0)) / branches)
    return values


def discover_report(repo_root: Path) -> Path | None:
    for name in DEFAULT_REPORT_NAMES:
        candidate = repo_root / name
        if candidate.is_file():
            return candidate
    return None


class CoverageCollector(MetricCollector):
    """Test-coverage percentages from a Cobertura XML or coverage.py JSON report."""

    name = "coverage"
    description = "line/branch coverage from coverage.xml (Cobertura) or coverage.json"
    provides = ("testing.line_coverage_pct", "testing.branch_coverage_pct")

    def __init__(self, report_path: Path, *, ctx: RunContext | None = None) -> None:
        super().__init__(ctx=ctx)
        self.report_path = Path(report_path)

    @property
    def source(self) -> str:
        return f"coverage:{self.report_path.name}"

    def _measure(self) -> Mapping[str, ObservedValue]:
        try:
            text = self.report_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CollectionUnavailableError(
                f"coverage report {self.report_path} unavailable: {exc.strerror or exc}", collector=self.name
            ) from exc
        try:
            if self.report_path.suffix.lower() == ".json":
                return parse_coverage_json(json.loads(text))
            return parse_cobertura(text)
        except (ElementTree.ParseError, json.JSONDecodeError, ValueError, TypeError) as exc:
            raise CollectionUnavailableError(f"coverage report {self.report_path} unreadable: {exc}", collector=self.name) from exc


__all__ = ["CoverageCollector", "discover_report", "parse_cobertura", "parse_coverage_json"]
