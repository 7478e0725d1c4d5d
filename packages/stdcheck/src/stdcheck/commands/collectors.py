from __future__ import annotations

import argparse

from ..collectors import builtin_collectors
from ..core.context import RunContext
from ..core.serialize import dumps_json


def run_collectors_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    rows = builtin_collectors()
    if ns.json:
        print(dumps_json({"schema_version": 1, "tool": "stdcheck", "status": "ok", "collectors": rows}))
        return 0
    for row in rows:
        print(f"{row['name']} ({row['kind']}): {row['description']}")
        for key in row["provides"]:
            print(f"  - {key}")
    return 0


def configure_collectors_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("collectors", help="list built-in evidence collectors and the metric keys they answer")
    p.add_argument("--json", action="store_true", help="emit JSON output")


__all__ = ["configure_collectors_parser", "run_collectors_command"]
