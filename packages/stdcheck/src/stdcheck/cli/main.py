from __future__ import annotations

import argparse
import importlib
import sys
from typing import Any, Mapping

from .. import __version__
from ..core.context import RunContext
from ..core.errors import StdcheckError
from ..core.exit_codes import ERR_CANCELLED, ERR_CONFIG, ERR_INTERNAL
from ..core.logging import log_event
from .constants import COMMAND_RUNNERS, CONFIGURE_HOOKS
from .output import emit, render_error


def _import_attr(module_name: str, attr: str):
    return getattr(importlib.import_module(module_name), attr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="stdcheck", description="evaluate a repository against engineering-standards rules")
    p.add_argument("--version", action="version", version=f"stdcheck {__version__}")
    p.add_argument("--run-id", help="run identifier stamped on log lines")
    p.add_argument("--log-format", choices=["text", "json"], default=None, help="structured log format on stderr")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable debug logging and list passing rules")
    vg.add_argument("--quiet", action="store_true", help="only log warnings and errors")
    sub = p.add_subparsers(dest="cmd", required=True)

    for module_name, attr in CONFIGURE_HOOKS:
        _import_attr(module_name, attr)(sub)

    version_p = sub.add_parser("version", help="print the stdcheck version")
    version_p.add_argument("--json", action="store_true", help="emit JSON output")
    return p


def _wants_json(ns: argparse.Namespace, settings: Mapping[str, Any] | None = None) -> bool:
    if getattr(ns, "json", False):
        return True
    if not hasattr(ns, "format"):
        return False
    fmt = ns.format or (settings or {}).get("format") or ""
    return str(fmt).strip().lower() == "json"


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    try:
        ns = p.parse_args(argv)
    except SystemExit as exc:
        # argparse exits 2 on usage errors, which would read as an advisory failure
        return ERR_CONFIG if exc.code else 0
    as_json = _wants_json(ns)
    ctx: RunContext | None = None
    try:
        ctx = RunContext.from_args(ns.run_id, getattr(ns, "repo", None), ns.log_format, ns.verbose, ns.quiet)
        as_json = _wants_json(ns, ctx.settings)
        log_event(ctx, "debug", "cli", "start", cmd=ns.cmd, repo_root=str(ctx.repo_root))
        if ns.cmd == "version":
            emit({"schema_version": 1, "tool": "stdcheck", "status": "ok", "version": __version__}, as_json)
            return 0
        if ns.cmd in COMMAND_RUNNERS:
            return _import_attr(*COMMAND_RUNNERS[ns.cmd])(ctx, ns)
        raise StdcheckError(f"unknown command `{ns.cmd}`", ERR_CONFIG, "config_error")
    except StdcheckError as exc:
        log_event(ctx, "error", "cli", "failed", kind=exc.kind, code=exc.code)
        print(render_error(as_json=as_json, message=str(exc), code=exc.code, kind=exc.kind), file=sys.stderr)
        return exc.code
    except KeyboardInterrupt:
        print(render_error(as_json=as_json, message="interrupted", code=ERR_CANCELLED, kind="cancelled"), file=sys.stderr)
        return ERR_CANCELLED
    except Exception as exc:  # pragma: no cover
        print(
            render_error(as_json=as_json, message=f"internal error: {exc}", code=ERR_INTERNAL, kind="internal_error"),
            file=sys.stderr,
        )
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
