"""Assemble the collector set for a run from CLI options and `[tool.stdcheck]` settings.

Registration order is the tie-break order: explicit metric snapshots first (so
an exported value overrides a computed one), then coverage, static analysis,
git, and finally the live metrics backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .base import CollectorSet
from .code import DEFAULT_EXCLUDED_DIRS, StaticAnalysisCollector
from .coverage import CoverageCollector, discover_report
from .prometheus import DEFAULT_REQUEST_TIMEOUT_SECONDS, PrometheusCollector, load_queries
from .static import SnapshotCollector
from .vcs import DEFAULT_BASE_REF, DEFAULT_GIT_TIMEOUT_SECONDS, VcsCollector

if TYPE_CHECKING:
    from ..core.context import RunContext


@dataclass(frozen=True)
class CollectorOptions:
    metrics_snapshots: tuple[Path, ...] = ()
    coverage_report: Path | None = None
    base_ref: str = DEFAULT_BASE_REF
    prometheus_url: str | None = None
    prometheus_queries: Path | None = None
    static_analysis: bool = True
    vcs: bool = True
    excluded_dirs: tuple[str, ...] = field(default_factory=tuple)
    timeout_seconds: float | None = None


def _resolve(repo_root: Path, raw: str | Path) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else repo_root / path


def build_collector_set(ctx: RunContext, options: CollectorOptions) -> CollectorSet:
    root = ctx.repo_root
    collectors: list[Any] = [SnapshotCollector(_resolve(root, path), ctx=ctx) for path in options.metrics_snapshots]

    coverage = _resolve(root, options.coverage_report) if options.coverage_report else discover_report(root)
    if coverage is not None:
        collectors.append(CoverageCollector(coverage, ctx=ctx))
    if options.static_analysis:
        excluded = DEFAULT_EXCLUDED_DIRS | frozenset(options.excluded_dirs)
        collectors.append(StaticAnalysisCollector(root, excluded_dirs=excluded, ctx=ctx))
    if options.vcs:
        collectors.append(
            VcsCollector(
                root,
                base_ref=options.base_ref,
                timeout_seconds=options.timeout_seconds or DEFAULT_GIT_TIMEOUT_SECONDS,
                ctx=ctx,
            )
        )
    if options.prometheus_url:
        queries = load_queries(_resolve(root, options.prometheus_queries)) if options.prometheus_queries else {}
        timeout = options.timeout_seconds or DEFAULT_REQUEST_TIMEOUT_SECONDS
        collectors.append(PrometheusCollector(options.prometheus_url, queries, request_timeout_seconds=timeout, ctx=ctx))
    return CollectorSet(collectors)


def builtin_collectors() -> list[dict[str, Any]]:
    rows = []
    for cls in (StaticAnalysisCollector, VcsCollector, CoverageCollector):
        rows.append({"name": cls.name, "kind": cls.__name__, "description": cls.description, "provides": list(cls.provides)})
    rows.append(
        {
            "name": "snapshot:<file>",
            "kind": SnapshotCollector.__name__,
            "description": "metric values exported to a JSON/YAML snapshot (--metrics)",
            "provides": ["<any key listed in the snapshot>"],
        }
    )
    rows.append(
        {
            "name": "prometheus",
            "kind": PrometheusCollector.__name__,
            "description": PrometheusCollector.description,
            "provides": ["<any key mapped in --prometheus-queries>"],
        }
    )
    return rows


__all__ = ["CollectorOptions", "build_collector_set", "builtin_collectors"]
