from __future__ import annotations

import argparse
from pathlib import Path

from ..core.context import RunContext
from ..core.errors import ConfigError
from ..core.serialize import dumps_json
from ..rules import RuleCatalog, dumps, load


def _load_catalog(ctx: RunContext, ns: argparse.Namespace) -> tuple[Path, RuleCatalog]:
    raw = ns.catalog or ctx.settings.get("catalog")
    if not raw:
        raise ConfigError("no rule catalog: pass --catalog or set `catalog` in [tool.stdcheck]")
    path = Path(raw).resolve() if ns.catalog else (ctx.repo_root / str(raw)).resolve()
    return path, load(path, ctx=ctx)


def _validate(ctx: RunContext, ns: argparse.Namespace) -> int:
    path, catalog = _load_catalog(ctx, ns)
    overlaps = catalog.overlaps()
    if ns.json:
        payload = {
            "schema_version": 1,
            "tool": "stdcheck",
            "status": "ok",
            "catalog": str(path),
            "rules": len(catalog),
            "metric_keys": len(catalog.metric_keys()),
            "overlaps": {key: list(ids) for key, ids in overlaps.items()},
        }
        print(dumps_json(payload))
        return 0
    print(f"catalog {path}: {len(catalog)} rules, {len(catalog.metric_keys())} metric keys")
    for key, ids in overlaps.items():
        print(f"- overlap `{key}`: {', '.join(ids)}")
    return 0


def _dump(ctx: RunContext, ns: argparse.Namespace) -> int:
    _, catalog = _load_catalog(ctx, ns)
    print(dumps(catalog, ns.to).rstrip("\n"))
    return 0


def run_catalog_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.catalog_cmd == "validate":
        return _validate(ctx, ns)
    if ns.catalog_cmd == "dump":
        return _dump(ctx, ns)
    raise ConfigError(f"unknown catalog command `{ns.catalog_cmd}`")


def configure_catalog_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("catalog", help="rule catalog commands")
    catalog_sub = p.add_subparsers(dest="catalog_cmd", required=True)
    validate = catalog_sub.add_parser("validate", help="load a catalog and report rules and overlapping metric keys")
    validate.add_argument("--catalog", help="rule catalog (JSON or YAML)")
    validate.add_argument("--json", action="store_true", help="emit JSON output")
    dump = catalog_sub.add_parser("dump", help="print the canonical form of a catalog")
    dump.add_argument("--catalog", help="rule catalog (JSON or YAML)")
    dump.add_argument("--to", choices=["json", "yaml"], default="json", help="output format")


__all__ = ["configure_catalog_parser", "run_catalog_command"]
