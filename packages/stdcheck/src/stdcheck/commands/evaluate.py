from __future__ import annotations

import argparse
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from ..collectors import CollectorOptions, build_collector_set
from ..collectors.vcs import DEFAULT_BASE_REF
from ..core.config import ENV_MAX_WORKERS, ENV_TIMEOUT, positive_float, positive_int, resolve_setting, string_list
from ..core.context import RunContext
from ..core.errors import ConfigError
from ..core.logging import log_event
from ..engine import DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT_SECONDS, evaluate
from ..reporting import exit_code_for, normalize_format, render
from ..rules import load


def _cli_path(raw: str | None) -> Path | None:
    return Path(raw).resolve() if raw else None


def _setting_path(ctx: RunContext, raw: Any) -> Path:
    path = Path(str(raw))
    return path if path.is_absolute() else (ctx.repo_root / path).resolve()


def _path_option(ctx: RunContext, cli_value: str | None, key: str) -> Path | None:
    if cli_value:
        return _cli_path(cli_value)
    raw = ctx.settings.get(key)
    return _setting_path(ctx, raw) if raw else None


def _report_format(ctx: RunContext, ns: argparse.Namespace) -> str:
    raw = ns.format or ctx.settings.get("format") or "human"
    try:
        return normalize_format(str(raw))
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def collector_options(ctx: RunContext, ns: argparse.Namespace, timeout_seconds: float | None = None) -> CollectorOptions:
    if ns.metrics:
        snapshots = tuple(Path(item).resolve() for item in ns.metrics)
    else:
        configured = resolve_setting(None, None, ctx.settings, "metrics", [], string_list)
        snapshots = tuple(_setting_path(ctx, item) for item in configured)
    prometheus_url = ns.prometheus_url or ctx.settings.get("prometheus_url")
    prometheus_queries = _path_option(ctx, ns.prometheus_queries, "prometheus_queries")
    if prometheus_queries is not None and not prometheus_url:
        raise ConfigError("--prometheus-queries requires --prometheus-url")
    return CollectorOptions(
        metrics_snapshots=snapshots,
        coverage_report=_path_option(ctx, ns.coverage, "coverage"),
        base_ref=str(ns.base_ref or ctx.settings.get("base_ref") or DEFAULT_BASE_REF),
        prometheus_url=str(prometheus_url) if prometheus_url else None,
        prometheus_queries=prometheus_queries,
        static_analysis=not ns.no_static_analysis,
        vcs=not ns.no_vcs,
        excluded_dirs=tuple(resolve_setting(None, None, ctx.settings, "exclude", [], string_list)),
        timeout_seconds=timeout_seconds,
    )


@contextmanager
def _cancel_on_sigterm(cancel: threading.Event) -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        cancel.set()

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _write_out_file(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")


def run_evaluate_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    catalog_path = _path_option(ctx, ns.catalog, "catalog")
    if catalog_path is None:
        raise ConfigError("no rule catalog: pass --catalog or set `catalog` in [tool.stdcheck]")
    fmt = _report_format(ctx, ns)
    timeout = resolve_setting(ns.timeout, ENV_TIMEOUT, ctx.settings, "timeout_seconds", DEFAULT_TIMEOUT_SECONDS, positive_float)
    workers = resolve_setting(ns.max_workers, ENV_MAX_WORKERS, ctx.settings, "max_workers", DEFAULT_MAX_WORKERS, positive_int)

    catalog = load(catalog_path, ctx=ctx)
    collectors = build_collector_set(ctx, collector_options(ctx, ns, timeout))
    log_event(ctx, "info", "cli", "evaluate", catalog=str(catalog_path), rules=len(catalog), collectors=",".join(collectors.names()))

    cancel = threading.Event()
    with _cancel_on_sigterm(cancel):
        report = evaluate(catalog, collectors, timeout_seconds=timeout, max_workers=workers, cancel=cancel, ctx=ctx)

    text = render(report, fmt, verbose=ctx.verbose)
    if ns.out_file:
        _write_out_file(Path(ns.out_file).resolve(), text)
    print(text)
    return exit_code_for(report)


def configure_evaluate_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("evaluate", help="evaluate a repository against a rule catalog")
    p.add_argument("--catalog", help="rule catalog (JSON or YAML); defaults to [tool.stdcheck] catalog")
    p.add_argument("--format", choices=["human", "text", "json"], default=None, help="report format")
    p.add_argument("--timeout", type=float, default=None, help="per-collector timeout in seconds")
    p.add_argument("--max-workers", type=int, default=None, help="metric keys collected in parallel")
    p.add_argument("--repo", help="repository root to evaluate (default: current directory)")
    p.add_argument("--base-ref", help=f"git ref the change is measured against (default: {DEFAULT_BASE_REF})")
    p.add_argument("--coverage", help="coverage.xml (Cobertura) or coverage.json report")
    p.add_argument("--metrics", action="append", default=[], help="metrics snapshot file; repeatable, earlier wins")
    p.add_argument("--prometheus-url", help="base URL of a Prometheus-compatible query API")
    p.add_argument("--prometheus-queries", help="file mapping metric keys to PromQL queries")
    p.add_argument("--no-static-analysis", action="store_true", help="do not scan Python sources")
    p.add_argument("--no-vcs", action="store_true", help="do not query git")
    p.add_argument("--out-file", help="also write the rendered report to this path")


__all__ = ["collector_options", "configure_evaluate_parser", "run_evaluate_command"]
